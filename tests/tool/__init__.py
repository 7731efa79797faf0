"""Test helpers for the glbc command line tool."""

import asyncio
import os
import sys


async def run_command(
    args: list[str], env: dict[str, str] | None = None
) -> tuple[int, str, str]:
    """Run glbc in a subprocess returning the exit code, stdout and stderr."""
    proc = await asyncio.create_subprocess_exec(
        sys.executable,
        "-m",
        "glbc",
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env={**os.environ, **(env or {})},
    )
    stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=60.0)
    assert proc.returncode is not None
    return (proc.returncode, stdout.decode(), stderr.decode())
