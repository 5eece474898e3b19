"""
Session Lifecycle Controller Tests
"""

import logging
import unittest
from unittest.mock import Mock, call

import pytest

from bgpsimple.bgp.messages import BGPNotification, BGPUpdate
from bgpsimple.bgp.peer import BGPPeer, BGPPeerConfig
from bgpsimple.config import build_peer_config
from bgpsimple.controller import SessionController, SessionState

BASE = dict(myas="65001", myip="192.0.2.1", peeras="65002", peerip="192.0.2.2")


def make_peer(established=False):
    peer = Mock()
    peer.peer_id = "192.0.2.2"
    peer.peer_as = 65002
    peer.is_established.return_value = established
    return peer


@pytest.fixture
def infile(tmp_path):
    path = tmp_path / "table.dump"
    path.write_text("")
    return str(path)


@pytest.fixture
def controller(infile):
    config = build_peer_config(infile=infile, **BASE)
    return SessionController(config, Mock(), Mock(), Mock())


class TestTimer:

    def test_reconnect_when_down(self, controller):
        peer = make_peer(established=False)
        controller.state.full_update_sent = True

        controller.on_timer(peer)

        assert controller.process.mock_calls == [call.remove_peer(peer), call.add_peer(peer)]
        assert controller.state == SessionState(full_update_sent=False)
        controller.pipeline.run.assert_not_called()

    def test_full_update_once(self, controller, caplog):
        caplog.set_level(logging.INFO)
        peer = make_peer(established=True)
        controller.pipeline.run.return_value = 12

        controller.on_open(peer)
        controller.on_timer(peer)
        controller.on_timer(peer)
        controller.on_timer(peer)

        controller.pipeline.run.assert_called_once_with(peer)
        assert controller.state.full_update_sent
        assert "Sending full update." in caplog.messages
        assert "Full update sent." in caplog.messages
        controller.process.remove_peer.assert_not_called()

    def test_rerun_after_reset_and_reestablish(self, controller):
        peer = make_peer(established=True)
        controller.on_open(peer)
        controller.on_timer(peer)
        controller.on_timer(peer)
        assert controller.pipeline.run.call_count == 1

        controller.on_reset(peer)
        peer.is_established.return_value = False
        controller.on_timer(peer)
        assert controller.pipeline.run.call_count == 1

        peer.is_established.return_value = True
        controller.on_open(peer)
        controller.on_timer(peer)
        controller.on_timer(peer)
        assert controller.pipeline.run.call_count == 2

    def test_open_resets_flag(self, controller):
        """A renegotiated session gets a fresh full update"""
        peer = make_peer(established=True)
        controller.on_timer(peer)
        controller.on_open(peer)
        controller.on_timer(peer)

        assert controller.pipeline.run.call_count == 2

    def test_no_import_file(self):
        config = build_peer_config(**BASE)
        controller = SessionController(config, Mock(), Mock(), Mock())
        peer = make_peer(established=True)

        controller.on_open(peer)
        controller.on_timer(peer)

        controller.pipeline.run.assert_not_called()
        assert not controller.state.full_update_sent


class TestEvents:

    def test_reset_logged_as_error(self, controller, caplog):
        peer = make_peer()
        controller.on_reset(peer)

        assert [(r.levelno, r.getMessage()) for r in caplog.records] == [
            (logging.ERROR, "Connection reset with peer 192.0.2.2, AS 65002."),
        ]
        controller.process.add_peer.assert_not_called()

    def test_update_forwarded(self, controller):
        peer = make_peer()
        update = BGPUpdate(nlri=["10.0.0.0/8"])

        controller.on_update(peer, update)

        controller.update_logger.log_update.assert_called_once_with("192.0.2.2", 65002, update)

    def test_notification_forwarded(self, controller):
        peer = make_peer()
        notification = BGPNotification(6, 2)

        controller.on_notification(peer, notification)
        controller.on_error(peer, notification)

        controller.update_logger.log_notification.assert_called_once_with("192.0.2.2", 65002, notification)
        controller.update_logger.log_error.assert_called_once_with("192.0.2.2", 65002, notification)

    def test_keepalive_debug_only(self, controller, caplog):
        caplog.set_level(logging.DEBUG)
        controller.on_keepalive(make_peer())
        assert [r.levelno for r in caplog.records] == [logging.DEBUG]


class TestAttach(unittest.TestCase):

    def test_wires_real_peer(self):
        config = build_peer_config(**BASE)
        controller = SessionController(config, Mock(), Mock())
        peer = BGPPeer(BGPPeerConfig(local_as=65001, local_ip="192.0.2.1",
                                     peer_as=65002, peer_ip="192.0.2.2"))

        controller.attach(peer)

        self.assertEqual(peer.on_open, controller.on_open)
        self.assertEqual(peer.on_reset, controller.on_reset)
        self.assertEqual(peer.on_keepalive, controller.on_keepalive)
        self.assertEqual(peer.on_update, controller.on_update)
        self.assertEqual(peer.on_notification, controller.on_notification)
        self.assertEqual(peer.on_error, controller.on_error)
        self.assertEqual(len(peer.timers), 1)
        self.assertEqual(peer.timers[0].callback, controller.on_timer)
        self.assertEqual(peer.timers[0].interval, 10)

    def test_default_update_logger(self):
        controller = SessionController(build_peer_config(**BASE), Mock(), Mock())
        self.assertIsNotNone(controller.update_logger)
