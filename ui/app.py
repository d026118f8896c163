from __future__ import annotations

import logging
import os
import secrets
import threading
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator

from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from checklists import (
    ICON_CATALOGUE,
    Checklist,
    ChecklistStore,
    NotFoundError,
    ValidationError,
    attach_hooks,
    configure_logging,
    load_settings,
    workspace_root,
)

logger = logging.getLogger(__name__)

_store: ChecklistStore | None = None
_store_lock = threading.Lock()


def get_store() -> ChecklistStore:
    """Process-wide store, loaded on first use."""
    global _store
    with _store_lock:
        if _store is None:
            root = workspace_root()
            settings = load_settings(root)
            configure_logging(settings.log_level)
            store = ChecklistStore(root, settings=settings)
            attach_hooks(store.bus, root)
            store.initialize()
            _store = store
        return _store


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    if _store is not None:
        logger.info("Saving checklists on shutdown")
        _store.persist()


app = FastAPI(title="Checklists", version="0.1.0", lifespan=lifespan)

security = HTTPBasic(auto_error=False)


@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# ── Auth ──────────────────────────────────────────────────────


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("CHECKLISTS_USERNAME", "")
    expected_password = os.environ.get("CHECKLISTS_PASSWORD", "")

    if not expected_username or not expected_password:
        return "guest"

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


# ── Helpers ───────────────────────────────────────────────────


def checklist_detail(checklist: Checklist) -> str:
    """Subtitle shown under a checklist's name."""
    if not checklist.items:
        return "(No Items)"
    remaining = checklist.count_unchecked_items()
    if remaining == 0:
        return "All Done!"
    return f"{remaining} Remaining"


def _summary(index: int, checklist: Checklist) -> dict[str, Any]:
    return {
        "index": index,
        "name": checklist.name,
        "iconName": checklist.icon_name,
        "itemCount": len(checklist.items),
        "remaining": checklist.count_unchecked_items(),
        "detail": checklist_detail(checklist),
    }


def _index_of(store: ChecklistStore, checklist: Checklist) -> int:
    for i, cl in enumerate(store.checklists()):
        if cl is checklist:
            return i
    return -1


def _parse_due(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid dueDate: {value}")


def _bool_or_none(payload: dict[str, Any], key: str) -> bool | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise HTTPException(status_code=422, detail=f"{key} must be a boolean")
    return value


# ── Endpoints ─────────────────────────────────────────────────


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/icons")
def api_icons(username: str = Depends(get_current_user)) -> dict[str, Any]:
    return {"icons": list(ICON_CATALOGUE)}


@app.get("/api/checklists")
def api_list_checklists(
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    return {
        "checklists": [_summary(i, cl) for i, cl in enumerate(store.checklists())],
        "selectedIndex": store.selected_index,
    }


@app.post("/api/checklists")
def api_add_checklist(
    payload: dict[str, Any] = Body(...),
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    with store.lock:
        checklist = store.add_checklist(payload.get("name", ""), payload.get("iconName"))
        store.persist()
        return _summary(_index_of(store, checklist), checklist)


@app.put("/api/checklists/{index}")
def api_edit_checklist(
    index: int,
    payload: dict[str, Any] = Body(...),
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    with store.lock:
        checklist = store.edit_checklist(index, payload.get("name"), payload.get("iconName"))
        store.persist()
        return _summary(_index_of(store, checklist), checklist)


@app.delete("/api/checklists/{index}")
def api_delete_checklist(
    index: int,
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    with store.lock:
        checklist = store.remove_checklist(index)
        store.persist()
        return {"ok": True, "removed": checklist.name}


@app.get("/api/checklists/{index}/items")
def api_list_items(
    index: int,
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    with store.lock:
        checklist = store.checklist(index)
        return {
            "checklist": _summary(index, checklist),
            "items": [item.to_dict() for item in checklist.items],
        }


@app.post("/api/checklists/{index}/items")
def api_add_item(
    index: int,
    payload: dict[str, Any] = Body(...),
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    with store.lock:
        item = store.add_item(
            index,
            payload.get("text", ""),
            due_date=_parse_due(payload.get("dueDate")),
            should_remind=bool(_bool_or_none(payload, "shouldRemind")),
        )
        store.persist()
        return item.to_dict()


@app.put("/api/checklists/{index}/items/{item_id}")
def api_edit_item(
    index: int,
    item_id: int,
    payload: dict[str, Any] = Body(...),
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    with store.lock:
        item = store.edit_item(
            index,
            item_id,
            text=payload.get("text"),
            due_date=_parse_due(payload.get("dueDate")),
            should_remind=_bool_or_none(payload, "shouldRemind"),
        )
        store.persist()
        return item.to_dict()


@app.post("/api/checklists/{index}/items/{item_id}/toggle")
def api_toggle_item(
    index: int,
    item_id: int,
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    with store.lock:
        item = store.toggle_item(index, item_id)
        store.persist()
        return item.to_dict()


@app.delete("/api/checklists/{index}/items/{item_id}")
def api_delete_item(
    index: int,
    item_id: int,
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    with store.lock:
        item = store.remove_item(index, item_id)
        store.persist()
        return {"ok": True, "removed": item.item_id}


@app.get("/api/selection")
def api_get_selection(
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    with store.lock:
        selected = store.selected_checklist()
        return {
            "selectedIndex": store.selected_index,
            "checklist": _summary(store.selected_index, selected) if selected else None,
        }


@app.put("/api/selection")
def api_set_selection(
    payload: dict[str, Any] = Body(...),
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    index = payload.get("selectedIndex")
    if isinstance(index, bool) or not isinstance(index, int):
        raise HTTPException(status_code=422, detail="selectedIndex must be an integer")
    store.selected_index = index
    return {"selectedIndex": store.selected_index}


@app.post("/api/reminders/deliver")
def api_deliver_reminders(
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    return {"delivered": [r.to_dict() for r in store.deliver_due_reminders()]}


@app.post("/api/save")
def api_save(
    username: str = Depends(get_current_user),
    store: ChecklistStore = Depends(get_store),
) -> dict[str, Any]:
    store.persist()
    return {"ok": True}
