"""FastAPI application exposing the Slack attendance REST API."""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Dict, Optional, Tuple

import httpx
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response, status
from pydantic import BaseModel

from .config import Settings, load_settings
from .db import Database
from .security import verify_slack_signature
from .service import AttendanceService
from .slack_client import SlackApiError, SlackClient
from .timeutils import parse_date

logger = logging.getLogger(__name__)


class ManualEntryRequest(BaseModel):
    user_name: str
    message_type: str
    timestamp: str
    message_text: Optional[str] = None
    user_id: Optional[str] = None


class DeleteEntryRequest(BaseModel):
    id: int


def _parse_optional_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD") from exc


def date_range(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
) -> Tuple[Optional[date], Optional[date]]:
    start = _parse_optional_date(start_date)
    end = _parse_optional_date(end_date)
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="startDate must not be after endDate")
    return start, end


def create_app(
    settings: Optional[Settings] = None, service: Optional[AttendanceService] = None
) -> FastAPI:
    settings = settings or load_settings()
    if service is None:
        database = Database(settings.database_path)
        slack_client = SlackClient(settings.slack_bot_token)
        service = AttendanceService(settings, database, slack_client)

    async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> None:
        if x_api_key != settings.api_key:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid api key")

    app = FastAPI(title="Slack Attendance API", version="1.0.0")

    @app.on_event("startup")
    async def startup_event() -> None:
        if settings.channel_id:
            try:
                await service.sync_recent(1)
            except (SlackApiError, httpx.HTTPError) as exc:
                logger.error("Initial Slack sync failed: %s", exc)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - io bound
        await service.client.close()

    def get_service() -> AttendanceService:
        return service

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/attendance")
    async def get_attendance(
        window: Tuple[Optional[date], Optional[date]] = Depends(date_range),
        _: None = Depends(verify_api_key),
        svc: AttendanceService = Depends(get_service),
    ) -> Dict[str, Any]:
        summary = svc.get_attendance_summary(*window)
        return {"success": True, **summary.to_dict()}

    @app.get("/api/attendance/{user_id}")
    async def get_user_attendance(
        user_id: str,
        window: Tuple[Optional[date], Optional[date]] = Depends(date_range),
        _: None = Depends(verify_api_key),
        svc: AttendanceService = Depends(get_service),
    ) -> Dict[str, Any]:
        attendance = svc.get_user_attendance(user_id, *window)
        if attendance is None:
            raise HTTPException(status_code=404, detail="no attendance for user")
        return attendance.to_dict()

    @app.post("/api/slack/events")
    async def slack_events(
        request: Request, svc: AttendanceService = Depends(get_service)
    ) -> Dict[str, Any]:
        if not settings.slack_signing_secret:
            logger.error("SLACK_SIGNING_SECRET is not set")
            raise HTTPException(status_code=500, detail="Slack configuration missing")

        body = (await request.body()).decode("utf-8")
        signature = request.headers.get("x-slack-signature", "")
        timestamp = request.headers.get("x-slack-request-timestamp", "")
        if signature and timestamp:
            if not verify_slack_signature(body, signature, timestamp, settings.slack_signing_secret):
                logger.warning("Rejected Slack request with invalid signature")
                raise HTTPException(status_code=401, detail="Invalid signature")

        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise HTTPException(status_code=400, detail="Invalid JSON body") from exc
        return await svc.handle_event(payload)

    @app.get("/api/slack/messages")
    async def list_messages(
        message_type: Optional[str] = Query(None, alias="type"),
        channel_id: Optional[str] = Query(None, alias="channelId"),
        user_id: Optional[str] = Query(None, alias="userId"),
        limit: int = 100,
        window: Tuple[Optional[date], Optional[date]] = Depends(date_range),
        _: None = Depends(verify_api_key),
        svc: AttendanceService = Depends(get_service),
    ) -> Dict[str, Any]:
        try:
            messages = svc.list_messages(
                message_type, *window, channel_id=channel_id, user_id=user_id, limit=limit
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {
            "success": True,
            "count": len(messages),
            "messages": [message.to_dict() for message in messages],
        }

    @app.post("/api/slack/manual-entry")
    async def create_manual_entry(
        entry: ManualEntryRequest,
        _: None = Depends(verify_api_key),
        svc: AttendanceService = Depends(get_service),
    ) -> Dict[str, Any]:
        try:
            message = svc.add_manual_entry(
                entry.user_name,
                entry.message_type,
                entry.timestamp,
                entry.message_text,
                entry.user_id,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {
            "success": True,
            "message": "Manual entry saved successfully",
            "entry": message.to_dict(),
        }

    @app.delete("/api/slack/manual-entry")
    async def delete_manual_entry(
        entry: DeleteEntryRequest,
        _: None = Depends(verify_api_key),
        svc: AttendanceService = Depends(get_service),
    ) -> Dict[str, Any]:
        deleted = svc.delete_entry(entry.id)
        if deleted is None:
            raise HTTPException(status_code=404, detail="Entry not found or could not be deleted")
        return {
            "success": True,
            "message": "Entry deleted successfully",
            "entry": deleted.to_dict(),
        }

    @app.get("/api/slack/users")
    async def list_users(
        _: None = Depends(verify_api_key),
        svc: AttendanceService = Depends(get_service),
    ) -> Dict[str, Any]:
        return {"success": True, "users": svc.list_users()}

    @app.post("/api/refresh")
    async def refresh(
        days: int = 1,
        _: None = Depends(verify_api_key),
        svc: AttendanceService = Depends(get_service),
    ) -> Response:
        try:
            await svc.sync_recent(days)
        except (SlackApiError, httpx.HTTPError) as exc:
            logger.error("Slack sync failed: %s", exc)
            raise HTTPException(status_code=502, detail=str(exc) or "Slack request failed") from exc
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


__all__ = ["create_app", "date_range"]
