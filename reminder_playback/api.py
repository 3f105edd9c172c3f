"""
HTTP surface for the reminder engine
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .engine import ReminderEngine
from .errors import AlarmValidationError, ClipUnavailableError
from .logging_utils import get_logger

logger = get_logger(__name__)


class AlarmRequest(BaseModel):
    """New alarm submission"""
    time: str = Field(..., description="Time of day, HH:MM (24-hour)")
    message: str = Field(..., description="Text to speak")
    clip_path: Optional[str] = Field(None, description="Recorded clip to play instead of synthesized voice")
    api_key: Optional[str] = Field(None, description="Voice service key override")


def create_app(engine: Optional[ReminderEngine] = None) -> FastAPI:
    """Build the app; the engine runs on the server's event loop"""
    engine = engine or ReminderEngine()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage engine lifespan events."""
        logger.info("Starting reminder service")
        engine.start()
        yield
        engine.shutdown()
        logger.info("Reminder service stopped")

    app = FastAPI(title="Reminder Playback", lifespan=lifespan)
    app.state.engine = engine

    def _get_alarm_or_404(alarm_id: int):
        alarm = engine.get_alarm(alarm_id)
        if alarm is None:
            raise HTTPException(status_code=404, detail="Alarm not found")
        return alarm

    @app.get("/health")
    async def health():
        return {"status": "ok", "state": engine.state.value, "alarms": len(engine.list_alarms())}

    @app.get("/api/alarms")
    async def list_alarms():
        return [alarm.to_dict() for alarm in engine.list_alarms()]

    @app.post("/api/alarms", status_code=201)
    async def create_alarm(request: AlarmRequest):
        """Create an alarm; voice generation failures only produce a notice."""
        try:
            alarm = await engine.create_alarm(
                request.time, request.message,
                api_key=request.api_key, clip_path=request.clip_path,
            )
        except (AlarmValidationError, ClipUnavailableError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        logger.info(f"Created alarm: {alarm.id}")
        return alarm.to_dict()

    @app.delete("/api/alarms/{alarm_id}")
    async def delete_alarm(alarm_id: int):
        _get_alarm_or_404(alarm_id)
        engine.remove_alarm(alarm_id)
        logger.info(f"Deleted alarm: {alarm_id}")
        return {"status": "success"}

    @app.post("/api/alarms/{alarm_id}/toggle")
    async def toggle_alarm(alarm_id: int):
        _get_alarm_or_404(alarm_id)
        return engine.toggle_alarm(alarm_id).to_dict()

    @app.get("/api/ringing")
    async def ringing():
        session = engine.session
        return {"state": engine.state.value, "session": session.to_dict() if session else None}

    @app.post("/api/ringing/stop")
    async def stop_ringing():
        session = engine.stop()
        if session is None:
            return {"status": "info", "message": "Nothing is ringing"}
        return {"status": "success", "session": session.to_dict()}

    @app.post("/api/ringing/snooze")
    async def snooze_ringing(minutes: Optional[int] = None):
        if minutes is not None and minutes < 1:
            raise HTTPException(status_code=400, detail="Snooze minutes must be positive")
        session = engine.snooze(minutes)
        if session is None:
            return {"status": "info", "message": "Nothing is ringing"}
        alarm = engine.get_alarm(session.alarm_id)
        return {
            "status": "success",
            "session": session.to_dict(),
            "snooze_until": alarm.snooze_until if alarm else None,
        }

    @app.get("/api/notices")
    async def notices():
        return [notice.to_dict() for notice in engine.active_notices()]

    @app.post("/api/notices/{notice_id}/dismiss")
    async def dismiss_notice(notice_id: int):
        notice = engine.dismiss_notice(notice_id)
        if notice is None:
            raise HTTPException(status_code=404, detail="Notice not found")
        return notice.to_dict()

    return app
