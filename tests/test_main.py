import logging

import pytest

from pllsim.__main__ import main, parse_args


def test_defaults():
    args = parse_args([])
    assert args.scenario == "lock"
    assert args.target_mhz == 800.0
    assert args.clock_period == 10
    assert args.vcd is None
    assert not args.strict


def test_lock_scenario_reports_pass(capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "verdict=PASS lock_time=600 end_time=850" in out


@pytest.mark.parametrize("strict, code", [(False, 0), (True, 1)])
def test_failed_verdict_exit_code(capsys, strict, code):
    argv = ["--scenario", "no-start"] + (["--strict"] if strict else [])
    assert main(argv) == code
    assert "verdict=FAIL lock_time=None end_time=20100" in capsys.readouterr().out


def test_vcd_option(tmp_path, capsys):
    path = tmp_path / "run.vcd"
    assert main(["--vcd", str(path), "-v"]) == 0
    assert path.read_text().startswith("$date")


def test_unknown_scenario_is_rejected():
    with pytest.raises(SystemExit):
        parse_args(["--scenario", "warp"])


@pytest.mark.parametrize("argv", [["--target-mhz", "1e6"], ["--target-mhz", "0"], ["--clock-period", "7"]])
def test_unusable_settings_are_usage_errors(capsys, argv):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    assert excinfo.value.code == 2
    assert "pllsim: error:" in capsys.readouterr().err


def test_configuration_is_logged(caplog, capsys):
    with caplog.at_level(logging.INFO, logger="pllsim"):
        assert main(["--target-mhz", "200", "-v"]) == 0
    assert "configuration N=1, M=8, OD=1" in caplog.text
