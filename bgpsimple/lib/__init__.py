"""Helpers shared by the injector"""
