"""Escalation sweep: list (and optionally escalate) overdue, never-escalated decisions.

Meant to be run by an external scheduler, e.g. every 15 minutes:

    python scripts/escalation_sweep.py --tenant <uuid> --escalate-to <person uuid>
"""

import argparse
import asyncio
import uuid

from decisionops.core.config import get_settings
from decisionops.core.logging import configure_structlog
from decisionops.db.base import close_db, get_session_factory, init_db
from decisionops.db.redis import close_redis, get_redis, init_redis
from decisionops.services.decision_service import DecisionService
from decisionops.services.escalation_sweep import SWEEP_REASON, sweep_tenant, tenants_with_decisions
from decisionops.services.events import NullEventSink, RedisEventSink


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--tenant", type=uuid.UUID, action="append", help="Tenant id (repeatable; default: all)")
    parser.add_argument("--escalate-to", type=uuid.UUID, help="Escalate every candidate to this person")
    parser.add_argument("--reason", default=SWEEP_REASON)
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    args = parser.parse_args()
    if args.escalate_to and (not args.tenant or len(args.tenant) != 1):
        parser.error("--escalate-to needs exactly one --tenant (people are tenant-scoped)")
    return args


async def main() -> None:
    args = parse_args()
    settings = get_settings()
    configure_structlog(json_logs=not settings.debug)

    await init_db(args.database_url)
    events = NullEventSink()
    if settings.events_enabled and args.escalate_to:
        try:
            await init_redis()
            events = RedisEventSink(get_redis())
        except Exception as e:
            print(f"Event channel unavailable, escalations will not be announced: {e}")

    service = DecisionService(get_session_factory(), events=events)
    tenants = args.tenant or await tenants_with_decisions(service)

    try:
        for tenant_id in tenants:
            report = await sweep_tenant(service, tenant_id, args.escalate_to, reason=args.reason)
            print(f"Tenant {tenant_id}: {len(report.candidates)} candidate(s)")
            for decision in report.candidates:
                marker = "escalated" if decision.id in report.escalated else report.failed.get(decision.id, "pending")
                print(f"  {decision.id} | {decision.priority} | due={decision.due_at:%Y-%m-%d %H:%M} | {marker}")
    finally:
        await close_redis()
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
