import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import Body, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from picks_engine.config import Settings
from picks_engine.engine import PicksEngine
from picks_engine.errors import PicksEngineError, ResponseValidationError
from picks_engine.models.criteria import Criteria
from picks_engine.scheduler import WarmCacheScheduler

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger("pe.api")

REQUIRED_CRITERIA = ("timeframe", "riskAppetite", "catalystType", "sectorPreference", "discoveryMethod")


def _error_message(e: Exception) -> str:
    if isinstance(e, ResponseValidationError):
        return e.user_message
    return str(e) or "An unexpected error occurred"


def create_app(engine_factory: Optional[Callable[[], PicksEngine]] = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = engine_factory() if engine_factory else PicksEngine.from_settings(Settings.from_env())
        scheduler = WarmCacheScheduler(engine, engine.settings.warm_interval)
        app.state.engine = engine
        app.state.scheduler = scheduler
        scheduler.start()
        yield
        scheduler.stop()
        await engine.close()

    app = FastAPI(
        title="Picks Engine API",
        description="AI-generated stock picks with Redis-backed cost control.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _engine(request: Request) -> PicksEngine:
        return request.app.state.engine

    @app.get("/")
    async def root():
        return {"status": "ok", "docs": "/docs", "api": "/api/generate-picks"}

    @app.get("/health")
    async def health(request: Request):
        engine = _engine(request)
        reachable = await engine.store.ping()
        return {
            "status": "healthy",
            "redis": "connected" if reachable else "unavailable (caching disabled)",
            "timestamp": int(time.time()),
        }

    @app.get("/api/test-connection", tags=["Status"])
    async def test_connection(request: Request):
        engine = _engine(request)
        return {
            "anthropic":      engine.generator is not None,
            "redis":          engine.is_caching_enabled(),
            "redisReachable": await engine.store.ping(),
            "marketData":     engine.market_data is not None,
        }

    @app.post("/api/generate-picks", tags=["Picks"])
    async def generate_picks(request: Request, body: dict = Body(...)):
        missing = [f for f in REQUIRED_CRITERIA if not body.get(f)]
        if missing:
            return {"success": False, "error": "Missing required fields", "picks": []}
        try:
            criteria = Criteria.from_dict(body)
            result = await _engine(request).generate_picks(criteria, session_id=body.get("sessionId"))
        except (PicksEngineError, ValueError, TypeError) as e:
            log.error(f"Generate picks failed: {e}")
            return {"success": False, "error": _error_message(e), "picks": []}

        return {
            "success":     True,
            "picks":       result.get("picks", []),
            "generatedAt": result.get("generatedAt"),
            "criteria":    result.get("criteria"),
            "modelUsed":   result.get("modelUsed"),
            "fromCache":   result.get("fromCache", False),
            "cachedAt":    result.get("cachedAt"),
        }

    @app.get("/api/analyze/{ticker}", tags=["Picks"])
    async def analyze(request: Request, ticker: str,
                      model: Optional[str] = Query(None, description="Model override")):
        try:
            analysis = await _engine(request).analyze_stock(ticker, Criteria(model=model))
        except PicksEngineError as e:
            log.error(f"Analyze {ticker} failed: {e}")
            return {"success": False, "error": _error_message(e)}
        return {"success": True, "analysis": analysis}

    @app.get("/api/market-regime", tags=["Learning"])
    async def get_market_regime(request: Request):
        learning = _engine(request).learning
        return {
            "regime":   await learning.current_market_regime(),
            "snapshot": await learning.market_regime_snapshot(),
        }

    @app.post("/api/market-regime", tags=["Learning"])
    async def set_market_regime(request: Request, body: dict = Body(...)):
        regime = (body.get("regime") or "").strip()
        if not regime:
            return {"success": False, "error": "Missing regime"}
        ok = await _engine(request).learning.update_market_regime(regime, body.get("indicators"))
        return {"success": ok, "regime": regime}

    @app.get("/api/patterns", tags=["Learning"])
    async def patterns(
        request: Request,
        riskAppetite: str = Query("aggressive"),
        discoveryMethod: str = Query("all"),
    ):
        criteria = Criteria(risk_appetite=riskAppetite, discovery_method=discoveryMethod)
        found = await _engine(request).learning.fetch_success_patterns(criteria)
        return {"count": len(found), "patterns": found}

    @app.get("/api/scheduler", tags=["Status"])
    async def scheduler_status(request: Request):
        return request.app.state.scheduler.status()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = Settings.from_env().port
    uvicorn.run("app:app", host="0.0.0.0", port=port, reload=False, log_level="info")
