"""
Command Line Tests
"""

from unittest.mock import patch

import pytest

from bgpsimple.bgp.peer import BGPPeer
from bgpsimple.bgpsimple import build_parser, main
from bgpsimple.config import VERBOSE

BASE_ARGS = ["--myas", "65001", "--myip", "192.0.2.1", "--peeras", "65001", "--peerip", "192.0.2.2"]

LINE = "TABLE_DUMP2|1367366400|B|96.4.0.55|11686|10.0.0.0/24|11686 4436|IGP|96.4.0.55|0|0||NAG||\n"


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args(BASE_ARGS)

        assert args.verbose == 0
        assert args.next_hop_self is None
        assert args.filters == []
        assert args.local_pref == 500
        assert args.hold_time == 180
        assert args.peer_port == 179
        assert not args.dry_run

    def test_options(self):
        args = build_parser().parse_args(BASE_ARGS + [
            "-v", "-v", "-f", "table.dump", "-o", "out.txt", "-m", "10",
            "--filter", "NLRI=^10", "--filter", "ASPT=3356", "-n", "198.51.100.7",
        ])

        assert args.verbose == 2
        assert args.infile == "table.dump"
        assert args.outfile == "out.txt"
        assert args.prefix_limit == 10
        assert args.filters == ["NLRI=^10", "ASPT=3356"]
        assert args.next_hop_self == "198.51.100.7"

    def test_next_hop_self_without_address(self):
        args = build_parser().parse_args(BASE_ARGS + ["-n"])
        assert args.next_hop_self == ""

    def test_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--myas", "65001"])


class TestMain:

    def test_bad_address_exits(self, capsys):
        args = BASE_ARGS[:-1] + ["192.0.2.999"]
        with pytest.raises(SystemExit) as exc:
            main(args)

        assert exc.value.code == 1
        assert capsys.readouterr().out == "Error: Peer IP address is not valid: 192.0.2.999\n"

    def test_bad_filter_exits(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(BASE_ARGS + ["--filter", "BOGUS=1"])

        assert exc.value.code == 1
        assert capsys.readouterr().out.startswith("Error: Unknown filter key")

    def test_dry_run_without_file(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(BASE_ARGS + ["--dry"])
        assert exc.value.code == 1

    @patch("bgpsimple.bgpsimple.BGPProcess")
    def test_dry_run(self, process_cls, tmp_path, caplog):
        caplog.set_level(VERBOSE)
        infile = tmp_path / "table.dump"
        infile.write_text(LINE + LINE.replace("10.0.0.0/24", "10.0.0.0/99"))
        outfile = tmp_path / "out.txt"

        main(BASE_ARGS + ["--dry", "-f", str(infile), "-o", str(outfile)])

        process_cls.assert_not_called()
        assert "Dry run finished, 1 prefixes would be advertised." in caplog.messages
        assert outfile.read_text() == (
            "Generated UPDATE (not sent): PREFIX [10.0.0.0/24] AS_PATH [11686 4436] "
            "ATOMIC_AGGREGATE [0] LOCAL_PREF [500] COMMUNITY [] ORIGIN [IGP] NEXT_HOP [96.4.0.55]\n"
        )

    @patch("bgpsimple.bgpsimple.BGPProcess")
    def test_session_started(self, process_cls, caplog):
        caplog.set_level("INFO")
        process = process_cls.return_value

        main(BASE_ARGS + ["--hold-time", "90", "--peer-port", "1179"])

        (peer,) = process.add_peer.call_args.args
        assert isinstance(peer, BGPPeer)
        assert peer.config.hold_time == 90
        assert peer.config.peer_port == 1179
        assert peer.on_open is not None
        assert len(peer.timers) == 1
        process.event_loop.assert_called_once()
        assert "Trying to establish session..." in caplog.messages

    @patch("bgpsimple.bgpsimple.BGPProcess")
    def test_interrupt(self, process_cls):
        process_cls.return_value.event_loop.side_effect = KeyboardInterrupt

        with pytest.raises(SystemExit) as exc:
            main(BASE_ARGS)
        assert exc.value.code == 0
