"""
Picks Engine — Cache Warming Scheduler
────────────────────────────────────────
Off-peak pass over the most requested criteria combinations. Misses are
logged and, when regeneration is switched on, filled before users ask.
"""

import logging
import time
from typing import List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from picks_engine.models.criteria import Criteria

log = logging.getLogger("pe.scheduler")

GRACE_S = 300

POPULAR_CRITERIA: List[Criteria] = [
    Criteria(timeframe="3-days",   risk_appetite="aggressive",   discovery_method="all"),
    Criteria(timeframe="1-week",   risk_appetite="moderate",     discovery_method="all"),
    Criteria(timeframe="1-month",  risk_appetite="moderate",     discovery_method="undervalued-gems"),
    Criteria(timeframe="3-months", risk_appetite="conservative", discovery_method="all"),
]


class WarmCacheScheduler:

    def __init__(self, engine, interval_s: int, popular: Optional[List[Criteria]] = None,
                 regenerate: bool = False):
        self.engine     = engine
        self.interval_s = interval_s
        self.popular    = popular or POPULAR_CRITERIA
        self.regenerate = regenerate
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def run_once(self) -> List[str]:
        t0 = time.monotonic()
        missing = await self.engine.warm_cache(self.popular, generate=self.regenerate)
        elapsed = round(time.monotonic() - t0, 1)
        log.info(f"[warm_cache] Done — {len(self.popular) - len(missing)} warm  {len(missing)} missed  {elapsed}s")
        return missing

    def start(self):
        if self.running:
            log.warning("Scheduler already running — ignoring start call")
            return
        if self.interval_s <= 0:
            log.info("Cache warming disabled (interval 0)")
            return
        if not self.engine.is_caching_enabled():
            log.info("Cache warming skipped — caching disabled")
            return

        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            self.run_once,
            "interval",
            seconds            = self.interval_s,
            id                 = "warm_cache",
            name               = "Warm popular discovery criteria",
            max_instances      = 1,
            misfire_grace_time = GRACE_S,
            replace_existing   = True,
        )
        self._scheduler.start()
        log.info(f"Scheduler live — warming {len(self.popular)} criteria every {self.interval_s}s")

    def stop(self):
        if self.running:
            self._scheduler.shutdown(wait=False)
            log.info("Scheduler stopped")
        self._scheduler = None

    def status(self) -> dict:
        if not self.running:
            return {"running": False, "jobs": []}
        jobs = []
        for job in self._scheduler.get_jobs():
            nxt = job.next_run_time
            jobs.append({
                "id":       job.id,
                "name":     job.name,
                "next_run": nxt.isoformat() if nxt else None,
            })
        return {"running": True, "job_count": len(jobs), "jobs": jobs}
