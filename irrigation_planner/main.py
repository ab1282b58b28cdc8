"""
Zone Planner API application.
"""
from fastapi import FastAPI

from irrigation_planner.core.logging_config import setup_logging
from irrigation_planner.routers import zone_planner


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title="Irrigation Zone Planner",
        description="Watering schedules, cycle-and-soak protocols and water use for irrigation zones.",
        version="1.0.0",
    )
    app.include_router(zone_planner.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
