from __future__ import annotations
from fastapi import FastAPI, HTTPException, Body, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel
import importlib, json, logging, typing as t

# ---- Core imports ----
from dematel_core import config
from dematel_core.errors import (
    ConfigurationError,
    IncompleteTransport,
    IntegrityMismatch,
    MalformedEnvelope,
    TransportError,
)
from dematel_core.matrix import build_all, report_block
from dematel_core.questions import generate, progress
from dematel_core.sheet import build_rows, sanitize_sheet_name
from dematel_core.structure import loads_structure, verify_config_digest
from dematel_core.transport import pack, segment_to_wire, unpack
from .storage import append_history, list_sheets, load_sheet, save_sheet

log = logging.getLogger(__name__)

app = FastAPI(title="DEMATEL Survey API")

@app.get("/")
def root():
    return {"status": "ok", "service": "dematel-survey-api"}

ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8080",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
class PackReq(BaseModel):
    record: dict[str, t.Any]
    budget: int | None = None
    group_id: str | None = None
    structure: str | None = None  # raw structure file text, checked against configDigest

class UnpackReq(BaseModel):
    segments: list[dict[str, t.Any] | str]

class MatrixReq(BaseModel):
    answers: dict[str, t.Any]

class ProgressReq(BaseModel):
    structure: dict[str, t.Any]
    answers: dict[str, t.Any] = {}

# ---- Helpers ----
def _txt(message: str, status: int = 400) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=status)


def _structure_or_422(raw: dict[str, t.Any]):
    try:
        return loads_structure(json.dumps(raw, ensure_ascii=False))
    except ConfigurationError as exc:
        raise HTTPException(422, str(exc))


def _serialize_question(q) -> dict[str, t.Any]:
    def _item(it):
        out = {"id": it.id, "name": it.name, "description": it.description}
        if q.category == "criteria":
            out["examples"] = list(it.examples)
            out["dimension"] = it.dimension_name
            out["dimensionCode"] = it.dimension_id
        return out
    return {"type": q.category, "key": q.key, "itemA": _item(q.item_a), "itemB": _item(q.item_b)}


def _compression_ok() -> bool:
    try:
        importlib.import_module(config.COMPRESSION_MODULE)
    except ImportError:
        return False
    return True

# ---- Health ----
@app.get("/health")
def health():
    return {
        "version": config.BACKEND_VERSION,
        "compression": config.COMPRESSION_MODULE,
        "compression_available": _compression_ok(),
        "segment_budget": config.SEGMENT_BUDGET,
        "shared_key_required": bool(config.SHARED_KEY),
    }

# ---- Reporting backend: payload -> sheet ----
@app.post("/submit")
async def submit(request: Request):
    ct = request.headers.get("content-type", "")
    if not ct.startswith("text/plain"):
        return _txt("Unsupported Media Type", 415)
    raw = (await request.body()).decode("utf-8", errors="replace")
    if not raw:
        return _txt("Empty body")
    try:
        data = json.loads(raw)
    except ValueError:
        return _txt("Invalid JSON syntax")
    if not isinstance(data, dict):
        return _txt("Invalid JSON: must be an object")
    if config.SHARED_KEY and data.get("key") != config.SHARED_KEY:
        return _txt("Unauthorized", 401)
    survey_id = str(data.get("surveyId") if data.get("surveyId") is not None else "").strip()
    if not survey_id:
        return _txt("Missing field: surveyId")

    try:
        name = sanitize_sheet_name(survey_id)
        save_sheet(name, build_rows(data))
        append_history(survey_id, data)
    except (OSError, OverflowError, ValueError, TypeError) as exc:
        log.exception("submit failed for survey %s", survey_id)
        return JSONResponse({"ok": False, "error": str(exc), "version": config.BACKEND_VERSION})
    log.info("submission stored: survey=%s sheet=%s", survey_id, name)
    return {"ok": True, "version": config.BACKEND_VERSION, "sheet": name, "history": config.HISTORY_SHEET_NAME}


@app.get("/sheets")
def get_sheets():
    return {"sheets": list_sheets()}


@app.get("/sheets/{name}.csv")
def get_sheet_csv(name: str):
    body = load_sheet(name)
    if body is None:
        raise HTTPException(404, "sheet not found")
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{name}.csv\""},
    )

# ---- Question space / report ----
@app.post("/questions")
def questions_endpoint(structure: dict[str, t.Any] = Body(...)):
    parsed = _structure_or_422(structure)
    qs = generate(parsed.dimensions)
    return {"total": len(qs), "digest": parsed.digest, "questions": [_serialize_question(q) for q in qs]}


@app.post("/progress")
def progress_endpoint(req: ProgressReq):
    parsed = _structure_or_422(req.structure)
    return progress(generate(parsed.dimensions), req.answers)


@app.post("/report/matrices")
def matrices_endpoint(req: MatrixReq):
    out = []
    for n, (_cluster, m) in enumerate(build_all(req.answers), start=1):
        out.append({
            "labels": m.labels,
            "group": m.group_label,
            "matrix": m.values,
            "rows": report_block(n, m),
        })
    return {"matrices": out}

# ---- QR transport ----
@app.post("/transport/pack")
def pack_endpoint(req: PackReq):
    if req.structure is not None:
        try:
            current = loads_structure(req.structure)
        except ConfigurationError as exc:
            raise HTTPException(422, str(exc))
        try:
            verify_config_digest(req.record, current)
        except ConfigurationError as exc:
            raise HTTPException(409, str(exc))
    try:
        segs = pack(req.record, req.budget, group_id=req.group_id)
    except TransportError as exc:
        raise HTTPException(422, str(exc))
    return {"count": len(segs), "segments": [segment_to_wire(s) for s in segs]}


@app.post("/transport/unpack")
def unpack_endpoint(req: UnpackReq):
    try:
        record = unpack(req.segments)
    except (IncompleteTransport, MalformedEnvelope) as exc:
        raise HTTPException(400, f"{type(exc).__name__}: {exc}")
    except IntegrityMismatch as exc:
        raise HTTPException(422, f"IntegrityMismatch: {exc}")
    return {"record": record}
