import logging
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from sqlalchemy import inspect, text
from sqlmodel import Session, col, select

from db import create_db_and_tables, engine, get_session
from models import Performance
from schemas import (
    ArtistListResponse,
    DashboardResponse,
    DrillDownKind,
    DrillDownResponse,
    MessageResponse,
    PerformanceCreate,
    PerformanceEnvelope,
    PerformanceListResponse,
    PerformanceResponse,
)
from stats import DEFAULT_LOCALE, DEFAULT_TOP_N, build_dashboard, select_drill_down
from storage import (
    UPLOAD_URL_PREFIX,
    PosterRejected,
    discard_poster,
    ensure_upload_dir,
    has_poster,
    save_poster,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


def describe_rejection(e: Exception) -> str:
    """Flatten a validation or upload error into one readable message."""
    if isinstance(e, ValidationError):
        return "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
    return str(e)


def to_response(performances) -> list[PerformanceResponse]:
    return [PerformanceResponse.model_validate(p) for p in performances]


def newest_created_first():
    return select(Performance).order_by(
        col(Performance.created_at).desc(), col(Performance.id).desc()
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and poster storage on startup."""
    create_db_and_tables()
    ensure_upload_dir()
    logger.info("Database initialized")
    yield


# Create FastAPI app
app = FastAPI(title="Performance Tracker API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# StaticFiles checks the directory when mounted
app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=ensure_upload_dir()), name="uploads")


@app.get("/api/status")
def status():
    """Server liveness check."""
    return {"status": "ok", "message": "Server is running"}


@app.get("/api/test")
def api_test():
    """API liveness check with server time."""
    return {"message": "API is working", "timestamp": datetime.now(UTC).isoformat()}


@app.post("/api/performances", response_model=PerformanceEnvelope)
def create_performance(
    artist: str | None = Form(None),
    type: str | None = Form(None),
    province: str | None = Form(None),
    city: str | None = Form(None),
    venue: str | None = Form(None),
    notes: str | None = Form(None),
    date: str | None = Form(None),
    poster: UploadFile | None = File(None),
    session: Session = Depends(get_session),
):
    """Log a new performance, storing its poster if one was uploaded."""
    logger.info(f"Create performance request - artist: {artist}, province: {province}, date: {date}")

    try:
        submission = PerformanceCreate(
            artist=artist, type=type, province=province,
            city=city, venue=venue, notes=notes, date=date,
        )
        poster_ref = save_poster(poster) if has_poster(poster) else None
    except (ValidationError, PosterRejected) as e:
        logger.warning(f"Rejected performance submission: {describe_rejection(e)}")
        raise HTTPException(status_code=400, detail=describe_rejection(e)) from e

    try:
        performance = Performance(**submission.model_dump(), poster=poster_ref)
        session.add(performance)
        session.commit()
        session.refresh(performance)
    except Exception as e:
        session.rollback()
        discard_poster(poster_ref)
        logger.error(f"Error creating performance: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    logger.info(f"Created performance {performance.id} for artist: {performance.artist}")
    return PerformanceEnvelope(
        success=True,
        message="Performance saved",
        data=PerformanceResponse.model_validate(performance),
    )


@app.get("/api/performances", response_model=PerformanceListResponse)
def get_performances(session: Session = Depends(get_session)):
    """All performances, most recently logged first."""
    logger.info("Performances request")
    try:
        performances = session.exec(newest_created_first()).all()
        logger.info(f"Found {len(performances)} performances")
        return PerformanceListResponse(success=True, data=to_response(performances))
    except Exception as e:
        logger.error(f"Error getting performances: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/api/performances/province/{province}", response_model=PerformanceListResponse)
def get_performances_by_province(province: str, session: Session = Depends(get_session)):
    """Performances logged under an exact province value."""
    logger.info(f"Province performances request: {province}")
    try:
        stmt = newest_created_first().where(Performance.province == province)
        performances = session.exec(stmt).all()
        return PerformanceListResponse(success=True, data=to_response(performances))
    except Exception as e:
        logger.error(f"Error getting province performances: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/api/performances/artist/{artist}", response_model=PerformanceListResponse)
def get_performances_by_artist(artist: str, session: Session = Depends(get_session)):
    """Performances by one artist, latest performance date first."""
    logger.info(f"Artist performances request: {artist}")
    try:
        stmt = (
            select(Performance)
            .where(Performance.artist == artist)
            .order_by(col(Performance.date).desc().nulls_last(), col(Performance.id).desc())
        )
        performances = session.exec(stmt).all()
        return PerformanceListResponse(success=True, data=to_response(performances))
    except Exception as e:
        logger.error(f"Error getting artist performances: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.put("/api/performances/{performance_id}", response_model=PerformanceEnvelope)
def update_performance(
    performance_id: int,
    artist: str | None = Form(None),
    type: str | None = Form(None),
    province: str | None = Form(None),
    city: str | None = Form(None),
    venue: str | None = Form(None),
    notes: str | None = Form(None),
    date: str | None = Form(None),
    poster: UploadFile | None = File(None),
    session: Session = Depends(get_session),
):
    """Replace a performance's fields. The poster is kept unless a new one is uploaded."""
    logger.info(f"Update performance request for ID: {performance_id}")

    try:
        submission = PerformanceCreate(
            artist=artist, type=type, province=province,
            city=city, venue=venue, notes=notes, date=date,
        )
    except ValidationError as e:
        logger.warning(f"Rejected performance update: {describe_rejection(e)}")
        raise HTTPException(status_code=400, detail=describe_rejection(e)) from e

    performance = session.get(Performance, performance_id)
    if not performance:
        raise HTTPException(status_code=404, detail="Performance not found")

    try:
        new_poster = save_poster(poster) if has_poster(poster) else None
    except PosterRejected as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    old_poster = performance.poster
    try:
        for field, value in submission.model_dump().items():
            setattr(performance, field, value)
        if new_poster:
            performance.poster = new_poster
        session.add(performance)
        session.commit()
        session.refresh(performance)
    except Exception as e:
        session.rollback()
        discard_poster(new_poster)
        logger.error(f"Error updating performance: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    if new_poster and old_poster != new_poster:
        discard_poster(old_poster)

    logger.info(f"Successfully updated performance {performance_id}")
    return PerformanceEnvelope(
        success=True,
        message="Performance updated",
        data=PerformanceResponse.model_validate(performance),
    )


@app.delete("/api/performances/{performance_id}", response_model=MessageResponse)
def delete_performance(performance_id: int, session: Session = Depends(get_session)):
    """Delete a specific performance."""
    logger.info(f"Delete performance request for ID: {performance_id}")

    try:
        performance = session.get(Performance, performance_id)

        if not performance:
            raise HTTPException(status_code=404, detail="Performance not found")

        session.delete(performance)
        session.commit()

        logger.info(f"Successfully deleted performance {performance_id}")
        return MessageResponse(success=True, message="Performance deleted")

    except HTTPException:
        raise
    except Exception as e:
        session.rollback()
        logger.error(f"Error deleting performance: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/api/artists", response_model=ArtistListResponse)
def get_artists(session: Session = Depends(get_session)):
    """Distinct artist names, alphabetically."""
    try:
        stmt = select(Performance.artist).distinct().order_by(Performance.artist)
        artists = session.exec(stmt).all()
        logger.info(f"Found {len(artists)} artists")
        return ArtistListResponse(success=True, data=list(artists))
    except Exception as e:
        logger.error(f"Error getting artists: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/api/statistics", response_model=DashboardResponse)
def get_statistics(
    top_n: int = Query(DEFAULT_TOP_N, ge=1, le=100),
    locale: str = Query(DEFAULT_LOCALE),
    session: Session = Depends(get_session),
):
    """Monthly, per-artist and per-province breakdowns over every logged performance."""
    logger.info(f"Statistics request - top_n: {top_n}, locale: {locale}")
    try:
        performances = session.exec(newest_created_first()).all()
        dashboard = build_dashboard(performances, top_n=top_n, locale=locale)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Error computing statistics: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    logger.info(
        f"Statistics computed over {dashboard.record_count} performances "
        f"({dashboard.monthly.total} dated)"
    )
    return DashboardResponse(success=True, data=dashboard)


@app.get("/api/statistics/drilldown", response_model=DrillDownResponse)
def get_drill_down(
    kind: DrillDownKind = Query(...),
    key: str = Query(...),
    locale: str = Query(DEFAULT_LOCALE),
    session: Session = Depends(get_session),
):
    """Performances behind one month, artist or province bucket."""
    logger.info(f"Drill-down request - kind: {kind}, key: {key}")
    try:
        performances = session.exec(newest_created_first()).all()
        selection = select_drill_down(kind, key, performances, locale=locale)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Error selecting drill-down: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    return DrillDownResponse(
        success=True,
        kind=selection.kind,
        key=selection.key,
        count=len(selection.matching_records),
        data=to_response(selection.matching_records),
    )


@app.get("/api/check-schema")
def check_schema():
    """Column layout of the performances table."""
    try:
        columns = inspect(engine).get_columns(Performance.__tablename__)
        return {
            "success": True,
            "schema": [
                {"name": c["name"], "type": str(c["type"]), "nullable": c["nullable"]}
                for c in columns
            ],
        }
    except Exception as e:
        logger.error(f"Error reading schema: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/api/test-db")
def test_db(session: Session = Depends(get_session)):
    """Run a trivial query to confirm the database is reachable."""
    timestamp = datetime.now(UTC).isoformat()
    try:
        result = session.execute(text("SELECT 1")).scalar()
        logger.info("Database connection test succeeded")
        return {"success": True, "message": "Database connection OK", "test": result, "timestamp": timestamp}
    except Exception as e:
        logger.error(f"Database connection test failed: {str(e)}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Database connection failed",
                "error": str(e),
                "timestamp": timestamp,
            },
        )


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": "Performance Tracker API", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
