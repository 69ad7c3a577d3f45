"""Raw LZMA1 compression backends.

The Pay by Square format compresses the checksum-framed record with LZMA1
using a fixed parameter set (lc=3, lp=0, pb=2, 128 KiB dictionary) and no
container header. The parameters are part of the wire format, so they are
module constants and cannot be changed per call.

Two interchangeable backends are provided:

``LzmaRawCompressor``
    In-process compression through Python's ``lzma`` module.
``XzBinaryCompressor``
    Pipes the data through an external ``xz`` binary, for environments where
    the interpreter was built without liblzma.

Both call the same liblzma encoder with the same preset defaults and produce
identical bytes. A backend is resolved once (``resolve_compressor`` or
``create_compressor_from_env``) and then reused for every encode call.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol

from .exceptions import DependencyUnavailableError

logger = logging.getLogger(__name__)

LC = 3
LP = 0
PB = 2
DICT_SIZE = 128 * 1024

XZ_LZMA1_ARGUMENT = f"--lzma1=lc={LC},lp={LP},pb={PB},dict=128KiB"

BACKEND_LZMA = "lzma"
BACKEND_XZ = "xz"
BACKENDS = (BACKEND_LZMA, BACKEND_XZ)

ENV_BACKEND = "PAY_BY_SQUARE_COMPRESSOR"
ENV_XZ_BINARY = "PAY_BY_SQUARE_XZ_BINARY"


class RawCompressor(Protocol):
    """Compresses a whole buffer into a raw LZMA1 stream."""

    def compress(self, data: bytes) -> bytes:
        ...


class LzmaRawCompressor:
    """Raw LZMA1 compression using the standard library ``lzma`` module."""

    def __init__(self) -> None:
        try:
            import lzma
        except ImportError as exc:
            raise DependencyUnavailableError(
                "Python was built without lzma support; use the 'xz' backend instead"
            ) from exc
        self._lzma = lzma
        self._filters = [
            {
                "id": lzma.FILTER_LZMA1,
                "lc": LC,
                "lp": LP,
                "pb": PB,
                "dict_size": DICT_SIZE,
            }
        ]

    def compress(self, data: bytes) -> bytes:
        try:
            compressor = self._lzma.LZMACompressor(
                format=self._lzma.FORMAT_RAW, filters=self._filters
            )
            return compressor.compress(data) + compressor.flush()
        except self._lzma.LZMAError as exc:
            raise DependencyUnavailableError(f"LZMA1 compression failed: {exc}") from exc

    def __repr__(self) -> str:
        return "LzmaRawCompressor()"


class XzBinaryCompressor:
    """Raw LZMA1 compression through an external ``xz`` process.

    Parameters
    ----------
    binary: str | Path | None
        Path to the ``xz`` executable. When omitted the binary is looked up
        on ``PATH``. The path is validated immediately so that a broken
        deployment fails at start-up rather than on the first payment.
    """

    def __init__(self, binary: Optional[str] = None, timeout: float = 30.0) -> None:
        if binary is None:
            found = shutil.which("xz")
            if found is None:
                raise DependencyUnavailableError(
                    "'xz' binary not found in PATH, specify it explicitly"
                )
            binary = found
        path = Path(binary)
        if not path.is_file():
            raise DependencyUnavailableError(f"The path '{binary}' to 'xz' binary is invalid")
        self.binary = str(path)
        self.timeout = timeout

    def command(self) -> List[str]:
        return [self.binary, "--format=raw", XZ_LZMA1_ARGUMENT, "-c", "-"]

    def compress(self, data: bytes) -> bytes:
        try:
            result = subprocess.run(
                self.command(),
                input=data,
                capture_output=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or b"").decode("utf-8", "replace").strip()
            raise DependencyUnavailableError(
                f"'xz' exited with status {exc.returncode}: {stderr}"
            ) from exc
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise DependencyUnavailableError(f"Cannot run '{self.binary}': {exc}") from exc
        return result.stdout

    def __repr__(self) -> str:
        return f"XzBinaryCompressor({self.binary!r})"


def resolve_compressor(
    backend: Optional[str] = None,
    xz_binary: Optional[str] = None,
) -> RawCompressor:
    """Return a ready-to-use compressor for ``backend``.

    ``backend`` defaults to ``"lzma"``, or to ``"xz"`` when only
    ``xz_binary`` is given.

    Raises
    ------
    DependencyUnavailableError
        If the backend is unknown or cannot be set up.
    """
    if backend is None:
        backend = BACKEND_XZ if xz_binary else BACKEND_LZMA
    backend = backend.strip().lower()
    if backend == BACKEND_LZMA:
        compressor: RawCompressor = LzmaRawCompressor()
    elif backend == BACKEND_XZ:
        compressor = XzBinaryCompressor(xz_binary)
    else:
        raise DependencyUnavailableError(
            f"Unknown compressor backend {backend!r}; expected one of {', '.join(BACKENDS)}"
        )
    logger.info("Resolved raw LZMA1 compressor: %r", compressor)
    return compressor


def create_compressor_from_env(env: Optional[dict] = None) -> RawCompressor:
    """Resolve the compressor configured through environment variables."""
    env = os.environ if env is None else env
    backend = env.get(ENV_BACKEND) or None
    xz_binary = env.get(ENV_XZ_BINARY) or None
    return resolve_compressor(backend, xz_binary)
