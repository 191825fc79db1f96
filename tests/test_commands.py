import chess
import pytest

from shallowred import commands
from shallowred.errors import ProtocolError


@pytest.mark.parametrize(
    "line, expected",
    [
        ("uci", commands.Handshake()),
        ("isready", commands.ReadyCheck()),
        ("ucinewgame", commands.NewGame()),
        ("stop", commands.CancelThinking()),
        ("quit", commands.Shutdown()),
        ("debuginternal", commands.DebugLoad()),
        ("  UCI  \n", commands.Handshake()),
    ],
)
def test_parse_command_simple_variants(line, expected) -> None:
    assert commands.parse_command(line) == expected


def test_parse_command_blank_lines() -> None:
    assert commands.parse_command("") is None
    assert commands.parse_command("   \t\n") is None


def test_parse_command_position_keeps_tokens() -> None:
    parsed = commands.parse_command("position startpos moves e2e4 e7e5")
    assert parsed == commands.SetPosition(("startpos", "moves", "e2e4", "e7e5"))


def test_parse_command_unrecognized() -> None:
    parsed = commands.parse_command("setoption name Hash value 32")
    assert isinstance(parsed, commands.Unrecognized)
    assert parsed.name == "setoption"


def test_parse_command_debug_toggle() -> None:
    assert commands.parse_command("debug on") == commands.DebugToggle(True)
    assert commands.parse_command("debug off") == commands.DebugToggle(False)
    assert commands.parse_command("debug maybe") == commands.DebugToggle(None)


def test_parse_go_args_interprets_time_controls() -> None:
    parsed = commands.parse_go_args(
        "wtime 1000 btime 2000 winc 10 binc 20 movestogo 30 movetime 40 depth 5 infinite ponder"
    )
    assert parsed.as_dict() == {
        "wtime": 1000,
        "btime": 2000,
        "winc": 10,
        "binc": 20,
        "movestogo": 30,
        "movetime": 40,
        "depth": 5,
        "infinite": True,
        "ponder": True,
    }
    assert parsed.remaining_ms(chess.WHITE) == 1000
    assert parsed.remaining_ms(chess.BLACK) == 2000


def test_parse_go_args_skips_unknown_tokens() -> None:
    parsed = commands.parse_go_args("searchmoves e2e4 wtime 500")
    assert parsed.as_dict() == {"wtime": 500}


@pytest.mark.parametrize("args", ["wtime abc btime 100", "wtime 100 btime", "depth 2.5"])
def test_parse_go_args_rejects_malformed_numbers(args: str) -> None:
    with pytest.raises(ProtocolError):
        commands.parse_go_args(args)


def test_parse_command_go_propagates_protocol_error() -> None:
    with pytest.raises(ProtocolError):
        commands.parse_command("go wtime x")
