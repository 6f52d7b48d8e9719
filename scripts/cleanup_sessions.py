#!/usr/bin/env python3
"""
Elimina las sesiones de conversación sin actividad reciente.

Uso:
    python scripts/cleanup_sessions.py --days 7
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional

import nearbuy.logging_config  # noqa: F401
from nearbuy.services.external import ApiSessionStore
from nearbuy.services.session import SessionManager, SessionStoreError

logger = logging.getLogger("cleanup_sessions")


async def run_cleanup(days: Optional[int], store=None) -> int:
    store = store or ApiSessionStore()
    try:
        manager = SessionManager(store)
        return await manager.cleanup_old_sessions(days)
    finally:
        close = getattr(store, "close", None)
        if close is not None:
            await close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Limpieza de sesiones inactivas")
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Días de inactividad (por defecto NEARBUY_SESSION_CLEANUP_DAYS)",
    )
    args = parser.parse_args(argv)

    if args.days is not None and args.days < 1:
        parser.error("--days debe ser mayor que 0")

    try:
        deleted = asyncio.run(run_cleanup(args.days))
    except SessionStoreError as e:
        logger.error(f"[CLEANUP] Falló la limpieza: {e}")
        return 1

    logger.info(f"[CLEANUP] Sesiones eliminadas: {deleted}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
