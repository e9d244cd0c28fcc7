from __future__ import annotations

import html
import logging
import secrets
from dataclasses import dataclass, field
from http import HTTPStatus
from http.cookies import SimpleCookie
from typing import Any, Callable, Iterable, Optional
from urllib.parse import parse_qs, quote, urlparse

from backend.fireforms.app import InspectionFormsApp
from backend.fireforms.forms import FormType, parse_form_type
from backend.fireforms.models import Frequency, NavigationState, Section
from backend.fireforms.navigation import FormSession

logger = logging.getLogger(__name__)

FREQUENCY_LABELS: dict[Frequency, str] = {
    Frequency.DAILY: "Daily",
    Frequency.WEEKLY: "Weekly",
    Frequency.MONTHLY: "Monthly",
    Frequency.QUARTERLY: "Quarterly",
    Frequency.SEMIANNUAL: "Semiannual",
    Frequency.ANNUAL: "Annual",
    Frequency.FIVE_YEAR: "5 Years",
}

MAX_SESSIONS = 500

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

PAGE_STYLE = """
body { font-family: system-ui, sans-serif; margin: 0; background: #f6f5f2; color: #1f2a24; }
.top-bar { display: flex; justify-content: space-between; padding: 0.8rem 1.5rem; background: #8a1c1c; color: #fff; }
.top-bar a { color: #fff; margin-left: 1rem; }
.content { padding: 1.5rem; }
.wizard { display: grid; grid-template-columns: 18rem 1fr; gap: 1.5rem; }
.section-nav button { display: block; width: 100%; text-align: left; margin-bottom: 0.4rem; padding: 0.6rem; }
.section-nav button.is-current { background: #8a1c1c; color: #fff; }
.section-nav button:disabled { opacity: 0.5; cursor: not-allowed; }
.frequency-warning { background: #fff4e5; border: 1px solid #f3c98b; padding: 0.75rem; }
.flash.error { color: #8a1c1c; }
"""


@dataclass
class Request:
    method: str
    target: str
    headers: dict[str, str]
    body: bytes = b""

    def __post_init__(self) -> None:
        parsed = urlparse(self.target)
        self.path = parsed.path or "/"
        self.query = parse_qs(parsed.query)
        self.form: dict[str, list[str]] = {}
        if self.method in {"POST", "PUT"}:
            content_type = self.headers.get("Content-Type", "")
            if "application/x-www-form-urlencoded" in content_type:
                self.form = parse_qs(self.body.decode("utf-8"), keep_blank_values=True)
        cookie_header = self.headers.get("Cookie", "")
        cookie = SimpleCookie(cookie_header)
        self.cookies = {key: morsel.value for key, morsel in cookie.items()}

    def form_value(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self.form.get(name)
        return values[0] if values else default

    def cookie(self, name: str) -> Optional[str]:
        return self.cookies.get(name)


@dataclass
class Response:
    status: int = HTTPStatus.OK
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes | str = ""

    def set_cookie(self, name: str, value: str, *, path: str = "/", max_age: Optional[int] = None) -> None:
        cookie = SimpleCookie()
        cookie[name] = value
        cookie[name]["path"] = path
        if max_age is not None:
            cookie[name]["max-age"] = str(max_age)
        header_value = cookie.output(header="")
        self.headers.append(("Set-Cookie", header_value.strip()))

    def add_header(self, name: str, value: str) -> None:
        self.headers.append((name, value))


class InspectionFormsWebApp:
    def __init__(self, service: Optional[InspectionFormsApp] = None, *, max_sessions: int = MAX_SESSIONS) -> None:
        self.service = service or InspectionFormsApp.create()
        self.max_sessions = max_sessions
        self.sessions: dict[str, dict[FormType, FormSession]] = {}
        self.flash_messages: dict[str, list[tuple[str, str]]] = {}

    # Public API -----------------------------------------------------------------
    def wsgi_app(self, environ: dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        method = environ["REQUEST_METHOD"]
        target = environ.get("RAW_URI") or environ.get("PATH_INFO", "/")
        if environ.get("QUERY_STRING") and "?" not in target:
            target = f"{target}?{environ['QUERY_STRING']}"
        length = int(environ.get("CONTENT_LENGTH") or 0)
        body = environ["wsgi.input"].read(length) if length else b""
        headers = {key: value for key, value in environ.items() if key.startswith("HTTP_")}
        if "CONTENT_TYPE" in environ:
            headers["Content-Type"] = environ["CONTENT_TYPE"]
        if "HTTP_COOKIE" in environ:
            headers["Cookie"] = environ["HTTP_COOKIE"]
        request = Request(method=method, target=target, headers=headers, body=body)
        response = self.handle(request)
        start_response(f"{response.status.value} {response.status.phrase}", response.headers)
        body = response.body if isinstance(response.body, bytes) else response.body.encode("utf-8")
        return [body]

    def handle(self, request: Request) -> Response:
        route = self._match_route(request)
        if not route:
            return self._not_found()
        handler, params = route
        try:
            response = handler(request, **params)
        except LookupError:
            return self._not_found()
        if not any(name.lower() == "content-type" for name, _ in response.headers):
            response.add_header("Content-Type", "text/html; charset=utf-8")
        if not (300 <= response.status.value < 400) and isinstance(response.body, str):
            messages = self._consume_messages(request)
            if messages:
                response.body = response.body.replace("<!--FLASH-->", self._render_messages(messages))
            else:
                response.body = response.body.replace("<!--FLASH-->", "")
        return response

    def run(self, host: str = "127.0.0.1", port: int = 8000) -> None:
        from wsgiref.simple_server import make_server

        with make_server(host, port, self.wsgi_app) as httpd:
            print(f"Serving on http://{host}:{port}")
            httpd.serve_forever()

    # Routing --------------------------------------------------------------------
    def _match_route(self, request: Request) -> Optional[tuple[Callable, dict[str, Any]]]:
        if request.method == "GET" and request.path == "/":
            return self._home, {}
        if request.path.startswith("/forms/"):
            parts = request.path.strip("/").split("/")
            if len(parts) == 2 and request.method == "GET":
                return self._form_get, {"form_slug": parts[1]}
            if len(parts) == 2 and request.method == "POST":
                return self._form_post, {"form_slug": parts[1]}
            if len(parts) == 3 and parts[2] == "frequency.xlsx" and request.method == "GET":
                return self._form_export, {"form_slug": parts[1]}
        return None

    # Session helpers ------------------------------------------------------------
    def _session_token(self, request: Request) -> Optional[str]:
        token = request.cookie("session_id")
        if token not in self.sessions:
            return None
        # Most recently used sessions sit at the end and are evicted last.
        self.sessions[token] = self.sessions.pop(token)
        return token

    def _start_session(self, response: Response) -> str:
        token = secrets.token_urlsafe(24)
        self.sessions[token] = {}
        while len(self.sessions) > self.max_sessions:
            expired = next(iter(self.sessions))
            del self.sessions[expired]
            self.flash_messages.pop(expired, None)
            logger.debug("Evicted session %s", expired)
        response.set_cookie("session_id", token, path="/")
        return token

    def _form_session(self, token: str, form_type: FormType) -> FormSession:
        forms = self.sessions.setdefault(token, {})
        session = forms.get(form_type)
        if session is None:
            session = self.service.open_session(
                form_type,
                on_section_change=lambda section_id: self._section_corrected(token, form_type, section_id),
            )
            forms[form_type] = session
        return session

    def _section_corrected(self, token: str, form_type: FormType, section_id: str) -> None:
        title = self._section_title(self.service.catalog.get_form(form_type).sections, section_id)
        logger.debug("Session section moved to %s on %s", section_id, form_type.value)
        self._flash(token, "info", f"Moved to “{title}” for the selected frequency.")

    def _flash(self, token: str, category: str, message: str) -> None:
        if token not in self.sessions:
            return
        self.flash_messages.setdefault(token, []).append((category, message))

    def _consume_messages(self, request: Request) -> list[tuple[str, str]]:
        key = request.cookie("session_id") or "__anon__"
        return self.flash_messages.pop(key, [])

    # Route handlers -------------------------------------------------------------
    def _home(self, request: Request) -> Response:
        return self._page("Inspection forms", self._render_form_list(self.service.list_forms()))

    def _form_get(self, request: Request, *, form_slug: str) -> Response:
        form_type = parse_form_type(form_slug)
        token = self._session_token(request)
        response = Response()
        if token is None:
            token = self._start_session(response)
        session = self._form_session(token, form_type)
        state = session.sync()
        response.body = self._page(session.form.title, self._render_wizard(session, state)).body
        return response

    def _form_post(self, request: Request, *, form_slug: str) -> Response:
        form_type = parse_form_type(form_slug)
        token = self._session_token(request)
        if token is None:
            return self._redirect(f"/forms/{form_type.value}")
        session = self._form_session(token, form_type)

        if "frequency" in request.form:
            frequency = request.form_value("frequency", "") or None
            session.set_frequency(frequency)

        action = request.form_value("action")
        section_id = request.form_value("section")
        try:
            if action == "next":
                session.next_section()
            elif action == "back":
                session.previous_section()
            elif section_id:
                session.select_section(section_id)
        except (ValueError, LookupError) as exc:
            self._flash(token, "error", str(exc))
        return self._redirect(f"/forms/{form_type.value}")

    def _form_export(self, request: Request, *, form_slug: str) -> Response:
        form_type = parse_form_type(form_slug)
        filename, data = self.service.export_frequency_workbook(form_types=[form_type])
        response = Response(headers=[("Content-Type", XLSX_CONTENT_TYPE)], body=data)
        response.add_header("Content-Disposition", f'attachment; filename="{filename}"')
        return response

    # Utility responses ----------------------------------------------------------
    def _page(self, title: str, content: str) -> Response:
        body = f"""
        <!doctype html>
        <html lang=\"en\">
          <head>
            <meta charset=\"utf-8\" />
            <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
            <title>{html.escape(title)} - NFPA 25 Inspections</title>
            <style>{PAGE_STYLE}</style>
          </head>
          <body>
            <header class=\"top-bar\">
              <div class=\"brand\">NFPA 25 Inspections</div>
              <nav class=\"nav-links\"><a href=\"/\">Forms</a></nav>
            </header>
            <main class=\"content\">
              <!--FLASH-->
              {content}
            </main>
          </body>
        </html>
        """
        return Response(body=body)

    def _redirect(self, location: str) -> Response:
        response = Response(status=HTTPStatus.SEE_OTHER)
        response.add_header("Location", location)
        response.body = f"<html><body>Redirecting to <a href=\"{html.escape(location)}\">{html.escape(location)}</a></body></html>"
        return response

    def _not_found(self) -> Response:
        body = "<html><body><h1>404 Not Found</h1></body></html>"
        return Response(status=HTTPStatus.NOT_FOUND, headers=[("Content-Type", "text/html; charset=utf-8")], body=body)

    # Rendering helpers ----------------------------------------------------------
    def _render_messages(self, messages: Iterable[tuple[str, str]]) -> str:
        items = [f'<li class="flash {html.escape(cat)}">{html.escape(msg)}</li>' for cat, msg in messages]
        if not items:
            return ""
        return '<ul class="flash-messages">' + "".join(items) + "</ul>"

    def _render_form_list(self, forms: dict[str, dict[str, object]]) -> str:
        rows = []
        for slug, form in forms.items():
            badge = ' <span class="badge">frequency-based</span>' if form["frequency_gated"] else ""
            rows.append(
                f'<li><a href="/forms/{quote(slug)}">{html.escape(str(form["title"]))}</a>{badge}</li>'
            )
        return "<section class=\"card\"><h1>Inspection forms</h1><ul>" + "".join(rows) + "</ul></section>"

    def _render_frequency_select(self, session: FormSession) -> str:
        options = ['<option value="">Select the frequency</option>']
        for frequency in session.form.frequencies:
            selected = " selected" if session.frequency is frequency else ""
            label = FREQUENCY_LABELS[frequency]
            options.append(f'<option value="{frequency.value}"{selected}>{label}</option>')
        return (
            f'<form method="post" action="/forms/{session.form.form_type.value}" class="frequency-form">'
            '<label for="frequency">Frequency</label>'
            f'<select id="frequency" name="frequency" data-testid="select-frequency">{"".join(options)}</select>'
            '<button type="submit">Apply</button>'
            "</form>"
        )

    @staticmethod
    def _section_title(sections: Iterable[Section], section_id: str) -> str:
        return next((section.title for section in sections if section.id == section_id), section_id)

    def _render_wizard(self, session: FormSession, state: NavigationState) -> str:
        form_action = f"/forms/{session.form.form_type.value}"
        buttons: list[str] = []
        for section in session.sections:
            enabled = state.is_section_enabled(section.id)
            classes = ["nav-section"]
            if section.id == state.current_section and enabled:
                classes.append("is-current")
            hidden_marker = (
                ' <span class="hidden-marker">Hidden</span>'
                if not enabled and state.has_frequency_restriction
                else ""
            )
            disabled = "" if enabled else " disabled"
            buttons.append(
                f'<button type="submit" name="section" value="{html.escape(section.id)}" '
                f'class="{" ".join(classes)}" data-testid="nav-{html.escape(section.id)}"{disabled}>'
                f"{html.escape(section.icon)} {html.escape(section.title)}{hidden_marker}</button>"
            )

        summary = ""
        info = None
        if session.form.frequency_gated:
            info = self.service.describe_frequency(session.frequency, form_type=session.form.form_type)
        if state.has_frequency_restriction:
            summary = (
                '<div class="nav-summary">'
                f"<span>{len(state.visible_sections)} active sections</span> "
                f"<span>{len(session.hidden_sections)} hidden sections</span>"
                "</div>"
            )

        frequency_help = ""
        if info is not None:
            label = FREQUENCY_LABELS.get(Frequency.parse(info.frequency), info.frequency)
            frequency_help = (
                '<div class="frequency-info">'
                f"<strong>Frequency: {html.escape(label)}</strong>"
                f"<p>{html.escape(info.description)}</p>"
                "</div>"
            )

        warning = ""
        if state.has_frequency_restriction and len(state.visible_sections) < len(session.sections):
            warning = (
                '<div class="frequency-warning">'
                "<p><strong>Frequency mode active</strong></p>"
                f"<p>Some sections are hidden for the selected frequency &quot;{html.escape(session.frequency_code or '')}&quot;. "
                "Select &quot;Annual&quot; or &quot;5 Years&quot; to see every section.</p>"
                "</div>"
            )

        current_title = html.escape(self._section_title(session.sections, state.current_section))
        position, total = session.progress
        selector = self._render_frequency_select(session) if session.form.frequency_gated else ""
        export_link = (
            f'<a href="{form_action}/frequency.xlsx">Download frequency coverage</a>'
            if session.form.frequency_gated
            else ""
        )
        return f"""
        <section class=\"wizard\">
          <aside class=\"section-nav\">
            <h2>Form sections</h2>
            {frequency_help}
            <form method=\"post\" action=\"{form_action}\">
              {"".join(buttons)}
            </form>
            {summary}
          </aside>
          <div class=\"wizard-body\">
            <h1>{html.escape(session.form.title)}</h1>
            {selector}
            <h2 data-testid=\"title-current-section\">{current_title}</h2>
            <p class=\"progress\">Section {position} of {total}</p>
            {warning}
            <form method=\"post\" action=\"{form_action}\" class=\"wizard-nav\">
              <button type=\"submit\" name=\"action\" value=\"back\">Back</button>
              <button type=\"submit\" name=\"action\" value=\"next\">Next</button>
            </form>
            {export_link}
          </div>
        </section>
        """


def create_app(service: Optional[InspectionFormsApp] = None, *, max_sessions: int = MAX_SESSIONS) -> InspectionFormsWebApp:
    return InspectionFormsWebApp(service, max_sessions=max_sessions)


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    logging.basicConfig(level=logging.INFO)
    create_app().run()
