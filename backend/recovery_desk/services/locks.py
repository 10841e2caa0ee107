"""Per-certificate serialization of ledger mutations.

Reconciliation re-reads every entry of a certificate and every sibling of
its establishment before writing totals back.  Two mutations interleaving on
the same certificate could each write totals computed from a stale read, so
mutations on one certificate are queued behind an ``asyncio.Lock``.  The lock
is in-process only; it does not coordinate separate worker processes.
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from recovery_desk.config import settings

logger = logging.getLogger(__name__)

_locks: "weakref.WeakValueDictionary[tuple[str, str, str], asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(key: tuple[str, str, str]) -> asyncio.Lock:
    lock = _locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _locks[key] = lock
    return lock


@asynccontextmanager
async def certificate_lock(tenant_id: str, esta_code: str, rrc_no: str) -> AsyncIterator[None]:
    """Hold the certificate's lock for the duration of the block.

    A no-op when ``settings.serialize_ledger_writes`` is off.
    """
    if not settings.serialize_ledger_writes:
        yield
        return

    lock = _lock_for((tenant_id, esta_code, rrc_no))
    if lock.locked():
        logger.debug("Waiting for ledger lock on %s/%s/%s", tenant_id, esta_code, rrc_no)
    async with lock:
        yield
