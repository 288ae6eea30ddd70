"""Running the external tools as child processes.

Children are started outside the terminal's foreground process group, so a
Ctrl+C reaches only this process and an in-flight recording, transcription or
answer runs to completion.  If the awaiting task is cancelled the child is
killed and reaped rather than left behind.
"""

from __future__ import annotations

import asyncio
import subprocess
import sys

if sys.platform == "win32":
    DETACH_KWARGS: dict = {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
else:
    DETACH_KWARGS = {"start_new_session": True}


async def run_tool(cmd: list[str], *, capture_stdout: bool = True) -> tuple[int, bytes, bytes]:
    """Run ``cmd`` to completion and return ``(returncode, stdout, stderr)``.

    Raises ``OSError`` when the executable cannot be started.
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE if capture_stdout else asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
        **DETACH_KWARGS,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()
        raise
    return proc.returncode, stdout or b"", stderr or b""
