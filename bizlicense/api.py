"""
HTTP boundary for requirement matching and report generation.

Validates the request body, calls the matcher against the catalog held on
app.state and serializes the results.
"""
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from bizlicense import config
from bizlicense.catalog import Catalog, load_catalog
from bizlicense.errors import InvalidProfileError
from bizlicense.matchers.requirement_matcher import match_requirements
from bizlicense.models import BusinessProfile, RequirementRecord
from bizlicense.profile_validation import validate_profile
from bizlicense.report_generator import generate_report


def requirement_to_dict(req: RequirementRecord) -> Dict[str, Any]:
    """Serialize a requirement, omitting predicate fields that are not set."""
    applies_if = {}
    for name, value in asdict(req.applies_if).items():
        if value is None:
            continue
        if isinstance(value, dict):
            value = {k: v for k, v in value.items() if v is not None}
        applies_if[name] = value
    return {
        "id": req.id,
        "title": req.title,
        "level": req.level.value,
        "summary": req.summary,
        "authority": req.authority,
        "source_ref": req.source_ref,
        "applies_if": applies_if,
    }


def profile_to_dict(profile: BusinessProfile) -> Dict[str, Any]:
    return {
        "area_m2": profile.area_m2,
        "seats": profile.seats,
        "gas": profile.gas,
        "serves_meat": profile.serves_meat,
        "deliveries": profile.deliveries,
    }


def _catalog(request: Request) -> Catalog:
    return request.app.state.catalog


def create_app(catalog: Optional[Catalog] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        catalog: Preloaded catalog. When omitted, it is loaded from
                 CATALOG_PATH at startup and startup fails if loading does.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.catalog is None:
            app.state.catalog = load_catalog(config.CATALOG_PATH)
        logger.info(f"🚀 Serving {len(app.state.catalog)} requirements")
        yield

    app = FastAPI(title="Business Licensing Requirements", version="0.1.0", lifespan=lifespan)
    app.state.catalog = catalog

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidProfileError)
    async def invalid_profile_handler(request: Request, exc: InvalidProfileError) -> JSONResponse:
        logger.debug(f"Rejected profile: {exc.message}")
        return JSONResponse(status_code=400, content={"error": exc.message, "field": exc.field})

    @app.exception_handler(RequestValidationError)
    async def malformed_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug(f"Rejected malformed body: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "request body must be a JSON object", "field": "body"})

    @app.get("/api/health")
    async def health(request: Request) -> Dict[str, Any]:
        return {"status": "ok", "requirements_count": len(_catalog(request))}

    @app.post("/api/match")
    async def match(request: Request, payload: Any = Body(...)) -> Dict[str, Any]:
        profile = validate_profile(payload)
        matched = match_requirements(profile, _catalog(request))
        return {
            "matched_requirements": [requirement_to_dict(r) for r in matched],
            "business_input": profile_to_dict(profile),
        }

    @app.post("/api/report")
    async def report(request: Request, payload: Any = Body(...)) -> Dict[str, Any]:
        profile = validate_profile(payload)
        catalog = _catalog(request)
        matched: List[RequirementRecord] = match_requirements(profile, catalog)
        result = await generate_report(profile, matched, total_checked=len(catalog))
        return {
            "report": result.report,
            "generated_by": result.generated_by,
            "matched_requirements": [requirement_to_dict(r) for r in matched],
            "business_input": profile_to_dict(profile),
        }

    return app


def serve() -> None:
    """Load the catalog and run the HTTP boundary with uvicorn."""
    import uvicorn

    app = create_app(load_catalog(config.CATALOG_PATH))
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
