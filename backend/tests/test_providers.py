import json
from datetime import date
from types import SimpleNamespace

import httpx
import openai
import pytest

from ledgerscan.core.exceptions import (
    ExtractionUnavailableError,
    MalformedResponseError,
    QuotaExhaustedError,
    RateLimitedError,
)
from ledgerscan.services.providers import (
    AIProviderFactory,
    EdgeFunctionProvider,
    HeuristicProvider,
    OpenRouterProvider,
    classify_status,
)
from ledgerscan.services.providers import factory
from ledgerscan.services.providers.base import ExtractionRequest
from ledgerscan.services.providers.prompts import parse_json_payload

IMAGE = ExtractionRequest(file_name="receipt.png", file_type="image/png", content=b"\x89PNG")
PDF = ExtractionRequest(file_name="invoice.pdf", file_type="application/pdf", content=b"%PDF")
ANSWER = {"documentType": "receipt", "extractedData": {"totalAmount": 12.5}}


@pytest.fixture
def no_credentials(monkeypatch):
    monkeypatch.setattr(factory, "EDGE_FUNCTION_URL", None)
    monkeypatch.setattr(factory, "EDGE_FUNCTION_KEY", None)
    monkeypatch.setattr(factory, "OPENROUTER_API_KEY", None)
    monkeypatch.setattr(factory, "ANTHROPIC_API_KEY", None)


def test_classify_status():
    assert isinstance(classify_status(429), RateLimitedError)
    assert isinstance(classify_status(402), QuotaExhaustedError)
    assert isinstance(classify_status(403), QuotaExhaustedError)
    error = classify_status(500, "internal")
    assert isinstance(error, ExtractionUnavailableError)
    assert error.status_code == 500


def test_factory_falls_back_to_heuristics(no_credentials):
    provider = AIProviderFactory.get_provider("openrouter")
    assert isinstance(provider, HeuristicProvider)
    assert provider.is_remote is False


def test_factory_uses_configured_provider(no_credentials, monkeypatch):
    monkeypatch.setattr(factory, "OPENROUTER_API_KEY", "sk-test")
    provider = AIProviderFactory.get_provider("openrouter")
    assert isinstance(provider, OpenRouterProvider)


def test_factory_tries_other_remote_backends(no_credentials, monkeypatch):
    monkeypatch.setattr(factory, "EDGE_FUNCTION_URL", "https://edge.test/functions/v1/process")
    provider = AIProviderFactory.get_provider("anthropic")
    assert isinstance(provider, EdgeFunctionProvider)


def test_factory_heuristic_on_request(monkeypatch):
    monkeypatch.setattr(factory, "OPENROUTER_API_KEY", "sk-test")
    assert isinstance(AIProviderFactory.get_provider("heuristic"), HeuristicProvider)


async def test_edge_provider_posts_wire_contract():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["headers"] = request.headers
        return httpx.Response(200, json=ANSWER)

    provider = EdgeFunctionProvider(
        url="https://edge.test/process", api_key="anon", transport=httpx.MockTransport(handler)
    )
    assert await provider.analyze(IMAGE) == ANSWER
    assert seen["body"] == {"fileData": IMAGE.encoded, "fileName": "receipt.png", "fileType": "image/png"}
    assert seen["headers"]["Authorization"] == "Bearer anon"
    assert seen["headers"]["apikey"] == "anon"


@pytest.mark.parametrize("status_code,expected", [
    (429, RateLimitedError),
    (402, QuotaExhaustedError),
    (403, QuotaExhaustedError),
    (500, ExtractionUnavailableError),
])
async def test_edge_provider_status_mapping(status_code, expected):
    transport = httpx.MockTransport(lambda r: httpx.Response(status_code, json={"error": "nope"}))
    provider = EdgeFunctionProvider(url="https://edge.test/process", api_key="k", transport=transport)
    with pytest.raises(expected):
        await provider.analyze(PDF)


async def test_edge_provider_malformed_and_network_errors():
    transport = httpx.MockTransport(lambda r: httpx.Response(200, text="not json"))
    provider = EdgeFunctionProvider(url="https://edge.test/process", api_key="k", transport=transport)
    with pytest.raises(MalformedResponseError):
        await provider.analyze(PDF)

    def offline(request):
        raise httpx.ConnectError("refused", request=request)

    provider = EdgeFunctionProvider(url="https://edge.test/process", api_key="k", transport=httpx.MockTransport(offline))
    with pytest.raises(ExtractionUnavailableError):
        await provider.analyze(PDF)


def test_parse_json_payload_variants():
    assert parse_json_payload('{"documentType": "invoice"}') == {"documentType": "invoice"}
    assert parse_json_payload('```json\n{"documentType": "receipt"}\n```') == {"documentType": "receipt"}
    assert parse_json_payload('Here you go: {"documentType": "receipt"} done') == {"documentType": "receipt"}

    with pytest.raises(MalformedResponseError) as exc_info:
        parse_json_payload("")
    assert exc_info.value.message == "No response from AI"
    with pytest.raises(MalformedResponseError):
        parse_json_payload("[1, 2, 3]")
    with pytest.raises(MalformedResponseError):
        parse_json_payload("no json at all")


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _status_error(cls, status_code):
    request = httpx.Request("POST", "https://openrouter.test/api/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return cls("error", response=response, body=None)


async def test_openrouter_sends_pdf_as_file_part():
    completions = FakeCompletions(content=json.dumps(ANSWER))
    provider = OpenRouterProvider(api_key="sk-test", model="test/model", client=_fake_client(completions))

    assert await provider.analyze(PDF, ocr_text="Total 12.50") == ANSWER
    user_content = completions.kwargs["messages"][1]["content"]
    assert user_content[1]["type"] == "file"
    assert user_content[1]["file"]["filename"] == "invoice.pdf"
    assert "Total 12.50" in user_content[0]["text"]
    assert completions.kwargs["response_format"] == {"type": "json_object"}


async def test_openrouter_sends_image_url_part():
    completions = FakeCompletions(content=json.dumps(ANSWER))
    provider = OpenRouterProvider(api_key="sk-test", client=_fake_client(completions))
    await provider.analyze(IMAGE)
    image_part = completions.kwargs["messages"][1]["content"][1]
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,")


@pytest.mark.parametrize("error,expected", [
    (_status_error(openai.RateLimitError, 429), RateLimitedError),
    (_status_error(openai.APIStatusError, 402), QuotaExhaustedError),
    (_status_error(openai.APIStatusError, 503), ExtractionUnavailableError),
])
async def test_openrouter_error_classification(error, expected):
    provider = OpenRouterProvider(api_key="sk-test", client=_fake_client(FakeCompletions(error=error)))
    with pytest.raises(expected):
        await provider.analyze(IMAGE)


async def test_openrouter_without_key_is_unavailable(monkeypatch):
    monkeypatch.setattr("ledgerscan.services.providers.openrouter_provider.OPENROUTER_API_KEY", None)
    with pytest.raises(ExtractionUnavailableError):
        await OpenRouterProvider().analyze(IMAGE)


async def test_heuristic_provider_answers_wire_format():
    provider = HeuristicProvider(today=lambda: date(2025, 1, 1))
    request = ExtractionRequest(file_name="SBB_ticket_CHF54.00.pdf", file_type="application/pdf", content=b"")
    answer = await provider.analyze(request)

    assert answer["documentType"] == "receipt"
    assert answer["extractedData"]["issuer"] == "SBB"
    assert answer["extractedData"]["totalAmount"] == "54.00"
    assert answer["extractedData"]["originalCurrency"] == "CHF"
    assert answer["extractedData"]["documentDate"] == "2025-01-01"
    assert answer["extractedData"]["expenseCategory"] == "travel"
