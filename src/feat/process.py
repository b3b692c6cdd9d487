"""Termination of invocation subprocesses."""

import os
import signal

import trio


def process_group(sp: "trio.Process") -> int:
    """The process group led by ``sp``, which must not be our own."""
    gid = os.getpgid(sp.pid)
    if gid == os.getpgrp():
        raise ValueError(f"Process {sp.pid} shares our process group; refusing to signal it")
    return gid


def signal_group(sp: "trio.Process", sig: int) -> None:
    """Send a signal to the process group led by ``sp``."""
    os.killpg(process_group(sp), sig)


async def terminate(sp: "trio.Process", delay: float = 0.1, grace: float = 5.0) -> None:
    """Stop a process that has outlived its time budget.

    The whole process group is interrupted first, so anything the
    implementation forked goes with it. After a short exponential backoff,
    or as soon as the leader exits, whatever is left of the group is
    killed outright.
    """
    await trio.lowlevel.checkpoint()
    if sp.returncode is not None:
        return
    try:
        # Looked up before the leader can be reaped, after which getpgid fails.
        gid = process_group(sp)
        # A forked child holding one of these open can keep us waiting.
        for pipe in [sp.stdout, sp.stderr, sp.stdin]:
            if pipe:
                await pipe.aclose()
        os.killpg(gid, signal.SIGINT)
        for n in range(6):
            if sp.poll() is not None:
                break
            await trio.sleep(delay * 1.5**n)
        # Children that ignored SIGINT can outlive the leader.
        os.killpg(gid, signal.SIGKILL)
    except ProcessLookupError:
        # The group is already empty.
        pass

    with trio.move_on_after(grace):
        await sp.wait()

    if sp.returncode is None:
        raise RuntimeError(f"Could not kill subprocess with pid {sp.pid}")
