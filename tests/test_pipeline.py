import pytest

from web_optimizer.errors import (
    ConfigurationError,
    EmptyResponse,
    GenerationFailed,
    MalformedReport,
    NoJsonFound,
    ServiceUnavailable,
)
from web_optimizer.pipeline import DEFAULT_ATTEMPTS, AcquisitionPipeline, is_credential_error

from conftest import AD_TEXT, FakeGateway, make_report_text


def test_first_attempt_success_makes_one_call(settings):
    gateway = FakeGateway([make_report_text()])
    report = AcquisitionPipeline(gateway, settings).acquire("https://example.com")

    assert report.overall_score == 72
    assert len(gateway.calls) == 1
    assert gateway.calls[0]["use_search"] is True
    assert gateway.calls[0]["temperature"] == settings.audit_temperature
    assert "https://example.com" in gateway.calls[0]["prompt"]


def test_failed_search_attempt_falls_back_exactly_once(settings):
    gateway = FakeGateway([GenerationFailed("503: overloaded", status_code=503), make_report_text()])
    report = AcquisitionPipeline(gateway, settings).acquire("https://example.com")

    assert report.target_url == "https://example.com"
    assert [c["use_search"] for c in gateway.calls] == [True, False]


def test_empty_text_falls_back(settings):
    gateway = FakeGateway(["   ", make_report_text()])
    AcquisitionPipeline(gateway, settings).acquire("https://example.com")
    assert len(gateway.calls) == 2


def test_credential_failures_become_configuration_error(settings):
    gateway = FakeGateway([
        GenerationFailed("403: permission denied", status_code=403),
        GenerationFailed("403: permission denied", status_code=403),
    ])
    with pytest.raises(ConfigurationError) as exc_info:
        AcquisitionPipeline(gateway, settings).acquire("https://example.com")

    assert len(gateway.calls) == 2
    assert isinstance(exc_info.value.__cause__, GenerationFailed)


def test_missing_api_key_keeps_its_message(settings):
    missing = ConfigurationError("no key", user_message="ANTHROPIC_API_KEY is not set.")
    gateway = FakeGateway([missing, missing])
    with pytest.raises(ConfigurationError) as exc_info:
        AcquisitionPipeline(gateway, settings).acquire("https://example.com")
    assert exc_info.value.user_message == "ANTHROPIC_API_KEY is not set."


def test_network_failures_become_service_unavailable(settings):
    gateway = FakeGateway([
        GenerationFailed("Connection error."),
        EmptyResponse("No text in response."),
    ])
    with pytest.raises(ServiceUnavailable):
        AcquisitionPipeline(gateway, settings).acquire("https://example.com")
    assert len(gateway.calls) == 2


def test_classification_uses_last_attempt(settings):
    gateway = FakeGateway([
        GenerationFailed("429: rate limited", status_code=429),
        GenerationFailed("Connection error."),
    ])
    with pytest.raises(ServiceUnavailable):
        AcquisitionPipeline(gateway, settings).acquire("https://example.com")


def test_malformed_text_is_terminal(settings):
    gateway = FakeGateway(['{"overallScore": 72,', make_report_text()])
    with pytest.raises(NoJsonFound):
        AcquisitionPipeline(gateway, settings).acquire("https://example.com")
    assert len(gateway.calls) == 1


def test_invalid_report_is_terminal(settings):
    gateway = FakeGateway([make_report_text(overallScore=250), make_report_text()])
    with pytest.raises(MalformedReport):
        AcquisitionPipeline(gateway, settings).acquire("https://example.com")
    assert len(gateway.calls) == 1


def test_target_url_and_scan_date_stamped(settings):
    gateway = FakeGateway([make_report_text(url="https://other.example", scanDate="")])
    report = AcquisitionPipeline(gateway, settings).acquire("https://example.com/")

    assert report.target_url == "https://example.com/"
    assert len(report.scan_date) == 10


def test_progress_messages(settings):
    messages = []
    gateway = FakeGateway([GenerationFailed("boom"), make_report_text()])
    AcquisitionPipeline(gateway, settings).acquire("https://example.com", on_progress=messages.append)

    assert messages == [
        DEFAULT_ATTEMPTS[0].progress_message,
        DEFAULT_ATTEMPTS[1].progress_message,
        "Parsing audit report...",
    ]


def test_attempt_count_is_bounded(settings):
    with pytest.raises(ValueError):
        AcquisitionPipeline(FakeGateway(), settings, attempts=DEFAULT_ATTEMPTS * 2)
    with pytest.raises(ValueError):
        AcquisitionPipeline(FakeGateway(), settings, attempts=())


@pytest.mark.parametrize(
    "error, expected",
    [
        (GenerationFailed("x", status_code=401), True),
        (GenerationFailed("x", status_code=500), False),
        (GenerationFailed("529: overloaded (request req_403a429b)", status_code=529), False),
        (GenerationFailed("500: permission service unavailable", status_code=500), False),
        (GenerationFailed("403: forbidden", status_code=None), True),
        (GenerationFailed("Your credit balance is too low"), True),
        (RuntimeError("invalid api key"), True),
        (RuntimeError("socket closed"), False),
        (ConfigurationError("no key"), True),
    ],
)
def test_is_credential_error(error, expected):
    assert is_credential_error(error) is expected


def test_create_ad_campaign_single_call_without_search(settings):
    gateway = FakeGateway([AD_TEXT])
    campaign = AcquisitionPipeline(gateway, settings).create_ad_campaign(
        "https://example.com", ("emergency plumber", "boiler repair")
    )

    assert campaign.descriptions
    assert len(gateway.calls) == 1
    assert gateway.calls[0]["use_search"] is False
    assert "emergency plumber, boiler repair" in gateway.calls[0]["prompt"]


def test_server_error_mentioning_credential_text_is_unavailable(settings):
    gateway = FakeGateway([
        GenerationFailed("529: overloaded (request req_403)", status_code=529),
        GenerationFailed("500: permission backend error", status_code=500),
    ])
    with pytest.raises(ServiceUnavailable):
        AcquisitionPipeline(gateway, settings).acquire("https://example.com")
