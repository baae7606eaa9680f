"""
HEIC to JPEG conversion through the ``sips`` command line tool.

The converter is stateless: each call derives a destination next to the
source, runs the external executable to completion and deletes the source
when the tool reports success. Failures are returned as results and logged,
never raised, so a bad file cannot take the watcher down with it.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from loguru import logger

SOURCE_SUFFIX = ".heic"
TARGET_FORMAT = "jpeg"
TARGET_EXTENSION = ".jpeg"


@dataclass(frozen=True, slots=True)
class ConversionJob:
    """A source file and the path its converted copy is written to."""

    source: Path
    destination: Path

    @classmethod
    def for_source(cls, source: Path) -> "ConversionJob":
        """Build a job writing ``<stem>.jpeg`` into the source's directory."""

        return cls(source=source, destination=source.with_suffix(TARGET_EXTENSION))


@dataclass(frozen=True, slots=True)
class ConversionResult:
    """Outcome of converting a single file."""

    job: ConversionJob
    success: bool
    reason: Optional[str] = None
    returncode: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    cleanup_error: Optional[str] = None


class Converter(Protocol):
    """Anything able to convert one file, used by the directory watcher."""

    def convert(self, source: Path) -> ConversionResult:
        ...


class SipsConverter:
    """Converts HEIC images to JPEG by shelling out to ``sips``."""

    def __init__(self, executable: Path = Path("/usr/bin/sips")):
        """
        Initialize converter.

        Args:
            executable: Path to the sips (or compatible) executable
        """
        self.executable = Path(executable)

    def build_command(self, job: ConversionJob) -> list[str]:
        """Return the argument vector for converting ``job``."""
        return [
            str(self.executable),
            "--setProperty", "format", TARGET_FORMAT,
            "--out", str(job.destination),
            str(job.source),
        ]

    def convert(self, source: Path) -> ConversionResult:
        """
        Convert ``source`` and delete it when the tool succeeds.

        Args:
            source: HEIC file to convert

        Returns:
            ConversionResult describing the outcome
        """
        job = ConversionJob.for_source(Path(source))
        logger.info(f"Converting {job.source} -> {job.destination}")

        try:
            completed = subprocess.run(
                self.build_command(job), capture_output=True, text=True, errors="replace"
            )
        except OSError as e:
            logger.error(f"Could not run {self.executable} for {job.source}: {e}")
            return ConversionResult(job=job, success=False, reason=str(e))

        if completed.stdout:
            logger.debug(f"{self.executable.name} output: {completed.stdout.strip()}")
        if completed.stderr:
            logger.warning(f"{self.executable.name} error output: {completed.stderr.strip()}")

        if completed.returncode != 0:
            reason = f"{self.executable.name} exited with status {completed.returncode}"
            logger.error(f"Conversion failed for {job.source}: {reason}")
            return ConversionResult(
                job=job,
                success=False,
                reason=reason,
                returncode=completed.returncode,
                stdout=completed.stdout,
                stderr=completed.stderr,
            )

        cleanup_error = None
        try:
            job.source.unlink()
        except OSError as e:
            # The JPEG is already written, so this stays a success.
            cleanup_error = str(e)
            logger.warning(f"Converted {job.source} but could not delete it: {e}")

        logger.success(f"Converted {job.source.name} to {job.destination.name}")
        return ConversionResult(
            job=job,
            success=True,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
            cleanup_error=cleanup_error,
        )
