"""Expire PENDING team invitations whose expiry has passed.

Usage: python scripts/expire_invitations.py
"""

import asyncio
import sys

from roster.infra import postgres
from roster.obs import logging as obs_logging
from roster.teams.jobs.invite_expiry import InviteExpiryJob


async def main() -> int:
    obs_logging.configure_logging()
    await postgres.init_pool()
    try:
        expired = await InviteExpiryJob().run_once()
    finally:
        await postgres.close_pool()
    print(f"Expired {expired} invitation(s).")
    return expired


if __name__ == "__main__":
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(main())
