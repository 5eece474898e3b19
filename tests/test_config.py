"""
Startup Configuration Tests
"""

import logging
import pytest

from bgpsimple.config import (
    PeerType, StartupConfigError, build_peer_config, log_summary, VERBOSE,
)


BASE = dict(myas="65001", myip="192.0.2.1", peeras="65002", peerip="192.0.2.2")


class TestPeerType:

    def test_ebgp(self):
        config = build_peer_config(**BASE)
        assert config.peer_type is PeerType.EBGP
        assert not config.is_ibgp

    def test_ibgp(self):
        config = build_peer_config(**dict(BASE, peeras="65001"))
        assert config.peer_type is PeerType.IBGP
        assert config.is_ibgp

    def test_immutable(self):
        config = build_peer_config(**BASE)
        with pytest.raises(AttributeError):
            config.peer_type = PeerType.IBGP


class TestNextHop:

    def test_ebgp_forced(self):
        """eBGP always rewrites NEXT_HOP to our address"""
        config = build_peer_config(**BASE)
        assert config.adjust_next_hop
        assert config.next_hop_self == "192.0.2.1"

    def test_ebgp_explicit_address_ignored(self, caplog):
        caplog.set_level(VERBOSE)
        config = build_peer_config(next_hop_self="198.51.100.7", **BASE)

        assert config.adjust_next_hop
        assert config.next_hop_self == "192.0.2.1"
        assert "next hop self implied here" in caplog.text

    def test_ibgp_default_keeps_next_hop(self):
        config = build_peer_config(**dict(BASE, peeras="65001"))
        assert not config.adjust_next_hop

    def test_ibgp_self(self):
        config = build_peer_config(next_hop_self="", **dict(BASE, peeras="65001"))
        assert config.adjust_next_hop
        assert config.next_hop_self == "192.0.2.1"

    def test_ibgp_explicit_address(self):
        config = build_peer_config(next_hop_self="198.51.100.7", **dict(BASE, peeras="65001"))
        assert config.adjust_next_hop
        assert config.next_hop_self == "198.51.100.7"

    def test_ibgp_bad_address(self):
        with pytest.raises(StartupConfigError, match="Next hop self"):
            build_peer_config(next_hop_self="198.51.100", **dict(BASE, peeras="65001"))


class TestValidation:

    @pytest.mark.parametrize("field,value,message", [
        ("peerip", "192.0.2.256", "Peer IP"),
        ("peeras", "0", "Peer AS"),
        ("myip", "foo", "Our IP"),
        ("myas", "65536", "Our AS"),
    ])
    def test_bad_values(self, field, value, message):
        with pytest.raises(StartupConfigError, match=message):
            build_peer_config(**dict(BASE, **{field: value}))

    def test_negative_prefix_limit(self):
        with pytest.raises(StartupConfigError):
            build_peer_config(prefix_limit=-1, **BASE)

    def test_zero_prefix_limit_is_unlimited(self):
        assert build_peer_config(prefix_limit=0, **BASE).prefix_limit is None

    def test_bad_local_pref(self):
        with pytest.raises(StartupConfigError):
            build_peer_config(local_pref=-5, **BASE)

    def test_dry_run_needs_file(self):
        with pytest.raises(StartupConfigError, match="dry run"):
            build_peer_config(dry_run=True, **BASE)

    def test_missing_input_file(self, tmp_path):
        with pytest.raises(StartupConfigError, match="Cannot open file"):
            build_peer_config(infile=str(tmp_path / "missing.dump"), **BASE)

    def test_output_file_truncated(self, tmp_path):
        outfile = tmp_path / "updates.txt"
        outfile.write_text("old run\n")

        build_peer_config(outfile=str(outfile), **BASE)

        assert outfile.read_text() == ""

    def test_unwritable_output_file(self, tmp_path):
        with pytest.raises(StartupConfigError):
            build_peer_config(outfile=str(tmp_path / "no" / "such" / "dir.txt"), **BASE)

    def test_defaults(self):
        config = build_peer_config(**BASE)
        assert config.local_pref == 500
        assert config.hold_time == 180
        assert config.peer_port == 179
        assert config.timer_interval == 10
        assert not config.dry_run


class TestSummary:

    def test_log_summary(self, caplog, tmp_path):
        infile = tmp_path / "table.dump"
        infile.write_text("")
        caplog.set_level(logging.INFO)

        log_summary(build_peer_config(infile=str(infile), prefix_limit=10, **BASE))

        assert "Configured for an eBGP session between me (AS65001, 192.0.2.1) " \
               "and peer (AS65002, 192.0.2.2)." in caplog.text
        assert f"Will use prefixes from file {infile}." in caplog.text
        assert "Maximum number of prefixes to be advertised: 10." in caplog.text
        assert "Will set next hop address to 192.0.2.1 because of eBGP peering." in caplog.text

    def test_log_summary_ibgp_spoofing(self, caplog):
        caplog.set_level(logging.INFO)
        log_summary(build_peer_config(next_hop_self="198.51.100.7", **dict(BASE, peeras="65001")))
        assert "Will spoof next hop address to 198.51.100.7." in caplog.text
