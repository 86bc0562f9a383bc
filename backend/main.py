from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.api.routes_calculator import configure_calculator, router as calculator_router
from backend.core.config import get_log_level, get_settings
from backend.core.logging import init_logging
from backend.trading.calculator import RiskCalculator


def create_app() -> FastAPI:
    settings = get_settings()
    init_logging(get_log_level())

    calculator = RiskCalculator.from_settings(settings)
    configure_calculator(calculator)

    app = FastAPI(
        title="Position Sizing Risk Calculator",
        version="0.1.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(calculator_router)
    return app


app = create_app()
