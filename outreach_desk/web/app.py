"""
FastAPI Web Application - Outreach Desk Dashboard
==================================================

JSON API plus a single dashboard page for importing prospects, sending
WhatsApp messages and watching delivery status.

Collaborators (store, messaging provider, sheet source) are built once per
app by create_app() and reached through a dependency, never via globals.
Handlers that can block (sheet sync, paced bulk send) are plain `def` so
FastAPI runs them in its threadpool while status reads keep working.
"""

import html
import logging
import threading
from contextlib import asynccontextmanager, contextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from ..application import Dispatcher, Reconciler
from ..domain import (
    ExternalSourceError,
    NotConnectedError,
    NotFoundError,
    OutreachError,
    ProspectStatus,
    ValidationError,
)
from ..infrastructure.config import Settings, get_settings
from ..infrastructure.importer import ExcelParser
from ..infrastructure.persistence import ProspectStore, create_store
from ..infrastructure.sheets import GoogleSheetSource
from ..infrastructure.whatsapp import ConnectionState, MessagingProvider, create_provider

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# ── Services ───────────────────────────────────────────────────────

class Services:
    """Everything a request handler needs, built once per app."""

    def __init__(
        self,
        store: ProspectStore,
        provider: MessagingProvider,
        source: Optional[GoogleSheetSource],
        send_delay: float,
        login_timeout: int = 5,
    ):
        self.store = store
        self.provider = provider
        self.source = source
        self.reconciler = Reconciler(store)
        self.dispatcher = Dispatcher(store, provider, delay_seconds=send_delay)
        self.login_timeout = login_timeout
        # One sync, send or WhatsApp login step at a time
        self.operation_lock = threading.Lock()

    @contextmanager
    def exclusive(self):
        if not self.operation_lock.acquire(blocking=False):
            raise HTTPException(status_code=409, detail="Another sync, send or WhatsApp operation is already running")
        try:
            yield
        finally:
            self.operation_lock.release()


def build_services(settings: Settings) -> Services:
    for issue in settings.validate():
        logger.warning(issue)

    source = GoogleSheetSource.from_settings(settings) if settings.sheets.is_configured else None
    return Services(
        store=create_store(settings),
        provider=create_provider(settings),
        source=source,
        send_delay=settings.whatsapp.send_delay_seconds,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


# ── Request bodies ─────────────────────────────────────────────────

class StatusUpdate(BaseModel):
    status: str


class SendSingleRequest(BaseModel):
    prospect_id: Optional[int] = None
    phone_number: Optional[str] = None
    message: Optional[str] = None


# ── Error mapping ──────────────────────────────────────────────────

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    ExternalSourceError: 502,
    NotConnectedError: 503,
}


async def outreach_error_handler(request: Request, exc: OutreachError) -> JSONResponse:
    status_code = 500
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    return JSONResponse(status_code=status_code, content={"message": str(exc)})


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


# ── API routes ─────────────────────────────────────────────────────

router = APIRouter()


@router.get("/api/prospects")
def list_prospects(services: Services = Depends(get_services)):
    prospects = services.store.get_all()
    logger.info(f"Fetched {len(prospects)} prospects from store")
    return [p.to_dict() for p in prospects]


@router.get("/api/stats")
def stats(services: Services = Depends(get_services)):
    return services.store.get_stats()


@router.post("/api/import-sheets")
def import_sheets(services: Services = Depends(get_services)):
    """Reconcile the store with the Google Sheet."""
    if services.source is None:
        raise HTTPException(status_code=503, detail="Google Sheets is not configured")

    with services.exclusive():
        logger.info("Manual import: Fetching from Google Sheets...")
        result = services.reconciler.sync(services.source)

    return {
        "message": f"Synced {len(result.prospects)} prospects from Google Sheets.",
        "count": len(result.prospects),
        **result.counts(),
    }


@router.post("/api/import-file")
async def import_file(file: UploadFile = File(...), services: Services = Depends(get_services)):
    """Bulk import prospects from an uploaded Excel/CSV file."""
    if not file.filename:
        raise ValidationError("No file selected")

    content = await file.read()
    rows, columns = ExcelParser().parse_bytes(content, file.filename)

    if not rows:
        raise ValidationError("No valid prospects found in file")

    result = services.store.create_many(rows)

    message = f"Imported {result.added} prospects!"
    if result.skipped > 0:
        message += f" ({result.skipped} duplicates skipped)"

    return {"message": message, "columns": columns, **result.to_dict()}


@router.post("/api/send-bulk")
def send_bulk(services: Services = Depends(get_services)):
    with services.exclusive():
        result = services.dispatcher.send_bulk()

    if result.sent == 0 and result.failed == 0:
        return {"message": "No pending messages to send", **result.to_dict()}

    return {
        "message": f"Bulk send completed. Sent: {result.sent}, Failed: {result.failed}",
        **result.to_dict(),
    }


@router.post("/api/send-single")
def send_single(body: SendSingleRequest, services: Services = Depends(get_services)):
    if body.prospect_id is None and not body.phone_number:
        raise ValidationError("prospect_id or phone_number is required")

    with services.exclusive():
        if body.prospect_id is not None:
            prospect = services.dispatcher.send_one(body.prospect_id, body.message)
        else:
            prospect = services.dispatcher.send_to_phone(body.phone_number, body.message)

    if prospect.status != ProspectStatus.SENT.value:
        return JSONResponse(
            status_code=500,
            content={"message": f"Failed to send message to {prospect.name}", "prospect": prospect.to_dict()},
        )

    return {"message": f"Message sent to {prospect.name}", "prospect": prospect.to_dict()}


@router.patch("/api/prospects/{prospect_id}/status")
def update_status(prospect_id: int, body: StatusUpdate, services: Services = Depends(get_services)):
    return services.store.update_status(prospect_id, body.status).to_dict()


@router.post("/api/prospects/{prospect_id}/reset")
def reset_prospect(prospect_id: int, services: Services = Depends(get_services)):
    """Re-queue a prospect for sending."""
    return services.store.update_status(prospect_id, ProspectStatus.PENDING.value).to_dict()


@router.delete("/api/prospects/{prospect_id}")
def delete_prospect(prospect_id: int, services: Services = Depends(get_services)):
    if not services.store.delete(prospect_id):
        raise NotFoundError("Prospect not found")
    return {"message": "Prospect deleted successfully"}


@router.get("/api/whatsapp-status")
def whatsapp_status(services: Services = Depends(get_services)):
    return services.provider.status()


@router.post("/api/whatsapp/connect")
def whatsapp_connect(services: Services = Depends(get_services)):
    """Launch the provider. For WhatsApp Web this opens the browser on the QR code."""
    with services.exclusive():
        launched = services.provider.connect()
    if not launched and services.provider.state == ConnectionState.DISCONNECTED:
        raise HTTPException(status_code=502, detail="Failed to launch WhatsApp")
    return services.provider.status()


@router.post("/api/whatsapp/confirm")
def whatsapp_confirm(services: Services = Depends(get_services)):
    with services.exclusive():
        ready = services.provider.confirm_login(timeout=services.login_timeout)
    if not ready:
        raise NotConnectedError("WhatsApp not ready. Make sure you scanned the QR code.")
    return services.provider.status()


@router.get("/api/test-sheets")
def test_sheets(services: Services = Depends(get_services)):
    if services.source is None:
        raise HTTPException(status_code=503, detail="Google Sheets is not configured")
    if not services.source.test_connection():
        raise HTTPException(status_code=502, detail="Google Sheets connection failed")
    return {"message": "Google Sheets connection successful!"}


@router.get("/", response_class=HTMLResponse)
def dashboard(services: Services = Depends(get_services)):
    return render_dashboard(
        services.store.get_stats(),
        services.store.get_all(),
        services.provider.status(),
        sheets_enabled=services.source is not None,
    )


# ── App factory ────────────────────────────────────────────────────

def _run_startup(services: Services, settings: Settings) -> None:
    if settings.whatsapp.connect_on_startup:
        services.provider.connect()

    if services.source is not None and settings.sheets.sync_on_startup:
        logger.info("Automatically importing prospects from Google Sheets on startup...")
        try:
            result = services.reconciler.sync(services.source)
            logger.info(f"Synced {len(result.prospects)} prospects automatically from Google Sheets.")
        except ExternalSourceError as e:
            logger.error(f"Automatic import from Google Sheets failed: {e}")


def create_app(
    store: Optional[ProspectStore] = None,
    provider: Optional[MessagingProvider] = None,
    source: Optional[GoogleSheetSource] = None,
    settings: Optional[Settings] = None,
    run_startup_tasks: bool = True,
) -> FastAPI:
    """
    Build the app. With no arguments everything comes from settings when the
    app starts; tests pass their own store/provider/source.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.services is None:
            app.state.services = build_services(settings)
        if run_startup_tasks:
            _run_startup(app.state.services, settings)
        logger.info("Outreach Desk ready")
        yield
        app.state.services.provider.close()

    app = FastAPI(title="Outreach Desk", description="Prospect import & WhatsApp outreach", lifespan=lifespan)
    app.state.services = None
    if store is not None:
        app.state.services = Services(
            store=store,
            provider=provider or create_provider(settings),
            source=source,
            send_delay=settings.whatsapp.send_delay_seconds,
        )

    app.add_exception_handler(OutreachError, outreach_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.include_router(router)
    return app


# ══════════════════════════════════════════════════════════════════
#  DASHBOARD
# ══════════════════════════════════════════════════════════════════

DASHBOARD_CSS = """
    :root {
        --bg-dark: #0a0a14;
        --bg-card: rgba(255,255,255,0.035);
        --border: rgba(255,255,255,0.07);
        --text: #e2e8f0;
        --text-muted: #64748b;
        --gradient: linear-gradient(135deg, #7c3aed 0%, #06b6d4 100%);
    }
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body {
        font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif;
        background: var(--bg-dark);
        color: var(--text);
        min-height: 100vh;
    }
    .container { max-width: 1400px; margin: 0 auto; padding: 24px; }
    header { display: flex; justify-content: space-between; align-items: center; gap: 16px; margin-bottom: 28px; }
    header h1 { font-size: 26px; font-weight: 800; background: var(--gradient);
                -webkit-background-clip: text; -webkit-text-fill-color: transparent; }
    .card { background: var(--bg-card); border: 1px solid var(--border); border-radius: 16px; padding: 24px; margin-bottom: 24px; }
    .stats { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 16px; margin-bottom: 24px; }
    .stat-value { font-size: 30px; font-weight: 800; }
    .stat-label { font-size: 12px; color: var(--text-muted); text-transform: uppercase; letter-spacing: 0.5px; }
    .toolbar { display: flex; flex-wrap: wrap; gap: 12px; align-items: center; }
    .btn { background: var(--gradient); color: #fff; border: none; padding: 10px 22px; border-radius: 10px;
           font-weight: 600; font-size: 14px; cursor: pointer; font-family: inherit; }
    .btn:disabled { opacity: 0.4; cursor: not-allowed; }
    .btn-tiny { padding: 4px 10px; font-size: 12px; border-radius: 6px; border: 1px solid var(--border);
                background: var(--bg-card); color: var(--text); cursor: pointer; }
    table { width: 100%; border-collapse: collapse; font-size: 14px; }
    th { text-align: left; font-size: 11px; color: var(--text-muted); text-transform: uppercase; padding: 10px; }
    td { padding: 10px; border-top: 1px solid var(--border); vertical-align: top; }
    td.message { max-width: 420px; color: #94a3b8; }
    .badge { padding: 4px 10px; border-radius: 6px; font-size: 10px; font-weight: 600; text-transform: uppercase; }
    .badge.pending { background: rgba(139,92,246,0.15); color: #a78bfa; }
    .badge.sent    { background: rgba(52,211,153,0.15); color: #34d399; }
    .badge.failed  { background: rgba(248,113,113,0.15); color: #f87171; }
    .empty-state { text-align: center; color: var(--text-muted); padding: 40px; }
    #flash { margin-bottom: 16px; color: #a78bfa; min-height: 20px; }
"""

DASHBOARD_JS = """
    async function api(method, url, body) {
        const opts = { method: method, headers: {} };
        if (body instanceof FormData) {
            opts.body = body;
        } else if (body !== undefined) {
            opts.headers['Content-Type'] = 'application/json';
            opts.body = JSON.stringify(body);
        }
        const flash = document.getElementById('flash');
        flash.textContent = 'Working...';
        const res = await fetch(url, opts);
        const data = await res.json().catch(() => ({}));
        flash.textContent = data.message || (res.ok ? 'Done' : 'Request failed');
        if (res.ok) { setTimeout(() => location.reload(), 800); }
    }
    function uploadFile(input) {
        const form = new FormData();
        form.append('file', input.files[0]);
        api('POST', '/api/import-file', form);
    }
    setInterval(async () => {
        const res = await fetch('/api/whatsapp-status');
        const status = await res.json();
        document.getElementById('wa-state').textContent = status.connected ? 'Connected' : status.state.replace('_', ' ');
    }, 5000);
"""


def render_dashboard(stats: dict, prospects: list, whatsapp: dict, sheets_enabled: bool = True) -> str:
    """Render the prospects table with stats cards and actions."""
    esc = html.escape

    table_rows = ""
    for p in prospects:
        table_rows += f"""
        <tr>
            <td><strong>{esc(p.name)}</strong></td>
            <td>{esc(p.category) or '—'}</td>
            <td><code>{esc(p.phone_number)}</code></td>
            <td class="message">{esc(p.message)}</td>
            <td><span class="badge {esc(p.status)}">{esc(p.status)}</span></td>
            <td>
                <button class="btn-tiny" onclick="api('POST', '/api/send-single', {{prospect_id: {p.id}}})">Send</button>
                <button class="btn-tiny" onclick="api('POST', '/api/prospects/{p.id}/reset')">Reset</button>
                <button class="btn-tiny" onclick="api('DELETE', '/api/prospects/{p.id}')">✕</button>
            </td>
        </tr>"""

    if not table_rows:
        table_rows = '<tr><td colspan="6" class="empty-state">No prospects yet. Import from Google Sheets or upload a file.</td></tr>'

    connected = whatsapp.get("connected", False)
    wa_label = "Connected" if connected else whatsapp.get("state", "disconnected").replace("_", " ")
    sheets_disabled = "" if sheets_enabled else "disabled"
    bulk_disabled = "" if stats["pending"] and connected else "disabled"

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Dashboard - Outreach Desk</title>
    <style>{DASHBOARD_CSS}</style>
</head>
<body>
    <div class="container">
        <header>
            <h1>Outreach Desk</h1>
            <div class="toolbar">
                <span>WhatsApp: <strong id="wa-state">{esc(wa_label)}</strong></span>
                <button class="btn" onclick="api('POST', '/api/whatsapp/connect')">Connect WhatsApp</button>
                <button class="btn" onclick="api('POST', '/api/whatsapp/confirm')">I'm Connected</button>
            </div>
        </header>

        <div id="flash"></div>

        <div class="stats">
            <div class="card"><div class="stat-value">{stats['total']}</div><div class="stat-label">Total Prospects</div></div>
            <div class="card"><div class="stat-value">{stats['sent']}</div><div class="stat-label">Messages Sent</div></div>
            <div class="card"><div class="stat-value">{stats['pending']}</div><div class="stat-label">Pending</div></div>
            <div class="card"><div class="stat-value">{stats['success_rate']}%</div><div class="stat-label">Success Rate</div></div>
        </div>

        <div class="card">
            <div class="toolbar" style="margin-bottom: 18px;">
                <button class="btn" {sheets_disabled} onclick="api('POST', '/api/import-sheets')">Sync Google Sheets</button>
                <label class="btn">Upload Excel/CSV
                    <input type="file" accept=".xlsx,.xls,.csv" style="display:none" onchange="uploadFile(this)">
                </label>
                <button class="btn" {bulk_disabled} onclick="api('POST', '/api/send-bulk')">Send All Pending</button>
            </div>
            <table>
                <thead>
                    <tr><th>Name</th><th>Skin Problem</th><th>Phone</th><th>Message</th><th>Status</th><th>Actions</th></tr>
                </thead>
                <tbody>{table_rows}</tbody>
            </table>
        </div>
    </div>
    <script>{DASHBOARD_JS}</script>
</body>
</html>"""


app = create_app()
