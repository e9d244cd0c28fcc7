from __future__ import annotations

import io
from http import HTTPStatus
from http.cookies import SimpleCookie
from urllib.parse import urlencode

import pytest
from openpyxl import load_workbook

from backend.fireforms.forms import FormType
from frontend.app import Request, create_app

STANDPIPE = f"/forms/{FormType.STANDPIPE_HOSE.value}"


class FrontendClient:
    def __init__(self, app):
        self.app = app
        self.cookies: dict[str, str] = {}

    def request(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, str] | None = None,
        follow_redirects: bool = False,
    ):
        headers: dict[str, str] = {}
        if self.cookies:
            headers["Cookie"] = "; ".join(f"{name}={value}" for name, value in self.cookies.items())
        body = b""
        if data is not None:
            body = urlencode(data, doseq=True).encode("utf-8")
            headers["Content-Type"] = "application/x-www-form-urlencoded"
        request = Request(method=method, target=path, headers=headers, body=body)
        response = self.app.handle(request)
        for name, value in response.headers:
            if name.lower() == "set-cookie":
                cookie = SimpleCookie()
                cookie.load(value)
                for key in cookie:
                    if cookie[key]["max-age"] == "0":
                        self.cookies.pop(key, None)
                    else:
                        self.cookies[key] = cookie[key].value
        if follow_redirects and 300 <= response.status.value < 400:
            location = dict(response.headers).get("Location")
            if location:
                return self.request("GET", location, follow_redirects=True)
        return response


@pytest.fixture
def web_app():
    return create_app()


@pytest.fixture
def client(web_app):
    return FrontendClient(web_app)


def test_home_lists_forms(client: FrontendClient):
    response = client.request("GET", "/")
    assert response.status == HTTPStatus.OK
    assert "Standpipe and Hose Systems" in response.body
    assert f'href="{STANDPIPE}"' in response.body


def test_form_page_without_frequency_enables_everything(client: FrontendClient):
    response = client.request("GET", STANDPIPE)
    assert response.status == HTTPStatus.OK
    assert "session_id" in client.cookies
    assert 'data-testid="nav-annual">' in response.body
    assert 'data-testid="title-current-section">General Information<' in response.body
    assert "Frequency mode active" not in response.body


def test_monthly_frequency_hides_higher_tiers(client: FrontendClient):
    client.request("GET", STANDPIPE)
    response = client.request("POST", STANDPIPE, data={"frequency": "mensal"}, follow_redirects=True)
    assert response.status == HTTPStatus.OK
    assert 'data-testid="nav-annual" disabled' in response.body
    assert 'data-testid="nav-monthly">' in response.body
    assert "Frequency mode active" in response.body
    assert "5 active sections" in response.body
    assert "3 hidden sections" in response.body
    assert "monthly equipment checks" in response.body


def test_frequency_change_moves_off_hidden_section(web_app, client: FrontendClient):
    client.request("GET", STANDPIPE)
    client.request("POST", STANDPIPE, data={"section": "annual"})
    token = client.cookies["session_id"]
    assert web_app.sessions[token][FormType.STANDPIPE_HOSE].current_section == "annual"

    response = client.request("POST", STANDPIPE, data={"frequency": "mensal"}, follow_redirects=True)
    assert web_app.sessions[token][FormType.STANDPIPE_HOSE].current_section == "general"
    assert "Moved to “General Information” for the selected frequency." in response.body
    assert 'data-testid="title-current-section">General Information<' in response.body


def test_selecting_hidden_section_flashes_error(client: FrontendClient):
    client.request("GET", STANDPIPE)
    client.request("POST", STANDPIPE, data={"frequency": "diaria"})
    response = client.request("POST", STANDPIPE, data={"section": "quarterly"}, follow_redirects=True)
    assert "is hidden for the selected frequency" in response.body
    assert 'data-testid="title-current-section">General Information<' in response.body


def test_next_and_back_buttons(client: FrontendClient):
    client.request("GET", STANDPIPE)
    client.request("POST", STANDPIPE, data={"frequency": "semanal"})
    response = client.request("POST", STANDPIPE, data={"action": "next"}, follow_redirects=True)
    assert 'data-testid="title-current-section">Daily Inspections<' in response.body
    response = client.request("POST", STANDPIPE, data={"action": "back"}, follow_redirects=True)
    assert 'data-testid="title-current-section">General Information<' in response.body


def test_clearing_frequency(client: FrontendClient):
    client.request("GET", STANDPIPE)
    client.request("POST", STANDPIPE, data={"frequency": "diaria"})
    response = client.request("POST", STANDPIPE, data={"frequency": ""}, follow_redirects=True)
    assert 'data-testid="nav-annual">' in response.body
    assert "hidden sections" not in response.body


def test_frequency_options_follow_the_form(client: FrontendClient):
    standpipe = client.request("GET", STANDPIPE).body
    mains = client.request("GET", f"/forms/{FormType.FIRE_SERVICE_MAINS.value}").body
    assert '<option value="diaria">' in standpipe
    assert '<option value="semestral">' not in standpipe
    assert '<option value="diaria">' not in mains
    assert '<option value="semestral">' in mains


def test_sprinkler_forms_have_no_frequency_selector(client: FrontendClient):
    for form_type in (FormType.DRY_SPRINKLER, FormType.PREACTION_DELUGE):
        response = client.request("GET", f"/forms/{form_type.value}")
        assert "select-frequency" not in response.body
        assert 'data-testid="nav-fiveyears">' in response.body


def test_unknown_frequency_shows_custom_description(client: FrontendClient):
    client.request("GET", STANDPIPE)
    response = client.request("POST", STANDPIPE, data={"frequency": "quinzenal"}, follow_redirects=True)
    assert "Frequency: quinzenal" in response.body
    assert "Custom frequency" in response.body
    assert 'data-testid="nav-annual">' in response.body
    assert "Frequency mode active" not in response.body


def test_sessions_are_capped():
    web_app = create_app(max_sessions=2)
    clients = [FrontendClient(web_app) for _ in range(3)]
    for client in clients:
        client.request("GET", STANDPIPE)
    tokens = [client.cookies["session_id"] for client in clients]
    assert list(web_app.sessions) == tokens[1:]

    web_app.flash_messages[tokens[2]] = [("info", "pending")]
    clients[1].request("GET", STANDPIPE)
    FrontendClient(web_app).request("GET", STANDPIPE)
    assert tokens[1] in web_app.sessions
    assert tokens[2] not in web_app.sessions
    assert tokens[2] not in web_app.flash_messages

    response = clients[0].request("GET", STANDPIPE)
    assert clients[0].cookies["session_id"] != tokens[0]
    assert response.status == HTTPStatus.OK


def test_post_without_session_redirects_to_form(client: FrontendClient):
    response = client.request("POST", STANDPIPE, data={"frequency": "mensal"})
    assert response.status == HTTPStatus.SEE_OTHER
    assert dict(response.headers)["Location"] == STANDPIPE


def test_form_without_frequency_gating_has_no_selector(client: FrontendClient):
    response = client.request("GET", f"/forms/{FormType.HYDRANT_FLOW_TEST.value}")
    assert response.status == HTTPStatus.OK
    assert "select-frequency" not in response.body
    assert "Measurements and Results" in response.body


def test_frequency_workbook_download(client: FrontendClient):
    response = client.request("GET", f"{STANDPIPE}/frequency.xlsx")
    assert response.status == HTTPStatus.OK
    headers = dict(response.headers)
    assert headers["Content-Type"].startswith("application/vnd.openxmlformats")
    assert "attachment" in headers["Content-Disposition"]
    workbook = load_workbook(io.BytesIO(response.body))
    assert FormType.STANDPIPE_HOSE.value in workbook.sheetnames


def test_unknown_form_is_not_found(client: FrontendClient):
    response = client.request("GET", "/forms/sprinkler-wet")
    assert response.status == HTTPStatus.NOT_FOUND
    response = client.request("GET", "/nowhere")
    assert response.status == HTTPStatus.NOT_FOUND
