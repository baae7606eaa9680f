from pathlib import Path

import pytest

from domains.heic_convert.cli import main, parse_args


def test_parse_args_overrides(tmp_path):
    args = parse_args(
        [
            "--watch-dir", str(tmp_path),
            "--converter", "/opt/bin/sips",
            "--retry-limit", "2",
            "--disabled",
            "--log-level", "debug",
        ]
    )

    assert args.watch_dir == tmp_path
    assert args.converter == Path("/opt/bin/sips")
    assert args.retry_limit == 2
    assert args.enabled is False
    assert args.log_level == "debug"


def test_parse_args_enabled_by_default(tmp_path):
    args = parse_args(["--watch-dir", str(tmp_path)])

    assert args.enabled is True


def test_main_fails_when_directory_cannot_be_watched(tmp_path):
    assert main(["--watch-dir", str(tmp_path / "missing"), "--log-level", "critical"]) == 1


if __name__ == "__main__":  # pragma: no cover
    pytest.main([__file__])
