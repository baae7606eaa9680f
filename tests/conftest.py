import stat
import sys
from pathlib import Path

import pytest
from loguru import logger

FAKE_SIPS = """#!/bin/sh
# Usage: sips --setProperty format jpeg --out <dest> <source>
dest="$5"
source="$6"
{pre_sleep}
case "$source" in
    *{fail_marker}*)
        echo "sips: unable to render $source" >&2
        exit 13
        ;;
esac
{pre_write}
echo "jpeg from $source" > "$dest"
echo "$source"
echo "  $dest"
"""


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def make_fake_sips(tmp_path):
    """Write a shell script that mimics the sips conversion interface.

    Sources whose path contains ``fail_marker`` make the script exit non-zero.
    ``remove_source`` makes the script delete its input, as if the file had
    been moved away while converting.
    ``delay`` makes every conversion take that many seconds.
    """
    if sys.platform.startswith("win"):
        pytest.skip("fake sips is a POSIX shell script")

    def _make(fail_marker: str = "__never_fails__", remove_source: bool = False, delay: float = 0) -> Path:
        script = tmp_path / "bin" / "sips"
        script.parent.mkdir(exist_ok=True)
        script.write_text(
            FAKE_SIPS.format(
                fail_marker=fail_marker,
                pre_sleep=f"sleep {delay}" if delay else "",
                pre_write='rm -f "$source"' if remove_source else "",
            )
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make
