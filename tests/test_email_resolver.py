"""Tests for the email resolver and name parsing."""
import asyncio

import httpx
import pytest
import respx

from founderreach.models.contact import Contact
from founderreach.services.directory import HunterClient
from founderreach.services.email_resolver import EmailResolver, parse_name

HUNTER_DOMAIN_SEARCH = "https://api.hunter.io/v2/domain-search"
HUNTER_EMAIL_FINDER = "https://api.hunter.io/v2/email-finder"


@pytest.mark.parametrize("raw, expected", [
    ("Priya Patel, MBA", ("priya", "patel")),
    ("Marcus P White", ("marcus", "white")),
    ("José Núñez", ("jose", "nunez")),
    ("Conor O'Brien", ("conor", "obrien")),
    ("Madonna", ("madonna", "")),
    ("", ("", "")),
])
def test_parse_name(raw, expected):
    assert parse_name(raw) == expected


class TestEmailResolver:
    @respx.mock(assert_all_called=False)
    def test_known_email_short_circuits(self):
        domain = respx.get(HUNTER_DOMAIN_SEARCH)
        finder = respx.get(HUNTER_EMAIL_FINDER)
        resolver = EmailResolver(HunterClient("key"))
        contact = Contact(name="Ravi Kumar", email="ravi@beta.in", source="rocketreach")

        match = asyncio.run(resolver.resolve("Ravi Kumar", "Beta", known_contact=contact))

        assert match.email == "ravi@beta.in"
        assert match.source == "rocketreach"
        assert not domain.called and not finder.called

    @respx.mock
    def test_domain_then_email_finder(self):
        respx.get(HUNTER_DOMAIN_SEARCH).mock(
            return_value=httpx.Response(200, json={"data": {"domain": "acme.io"}})
        )
        finder = respx.get(HUNTER_EMAIL_FINDER).mock(
            return_value=httpx.Response(200, json={"data": {"email": "priya@acme.io", "score": 91}})
        )
        resolver = EmailResolver(HunterClient("key"))

        match = asyncio.run(resolver.resolve("Priya Patel, MBA", "Acme"))

        assert (match.email, match.source, match.score) == ("priya@acme.io", "hunter.io", 91)
        params = finder.calls.last.request.url.params
        assert params["domain"] == "acme.io"
        assert params["first_name"] == "priya"
        assert params["last_name"] == "patel"

    @respx.mock(assert_all_called=False)
    def test_missing_domain_returns_none(self):
        respx.get(HUNTER_DOMAIN_SEARCH).mock(return_value=httpx.Response(200, json={"data": {}}))
        finder = respx.get(HUNTER_EMAIL_FINDER)

        assert asyncio.run(EmailResolver(HunterClient("key")).resolve("Jane Doe", "Ghost")) is None
        assert not finder.called

    @respx.mock
    def test_provider_error_returns_none(self):
        respx.get(HUNTER_DOMAIN_SEARCH).mock(side_effect=httpx.ConnectError("down"))

        assert asyncio.run(EmailResolver(HunterClient("key")).resolve("Jane Doe", "Acme")) is None

    def test_without_api_key_returns_none(self):
        assert asyncio.run(EmailResolver(HunterClient(None)).resolve("Jane Doe", "Acme")) is None

    @respx.mock
    def test_malformed_finder_payload_returns_none(self):
        respx.get(HUNTER_DOMAIN_SEARCH).mock(
            return_value=httpx.Response(200, json={"data": {"domain": "acme.io"}})
        )
        respx.get(HUNTER_EMAIL_FINDER).mock(return_value=httpx.Response(200, json={"data": "oops"}))

        assert asyncio.run(EmailResolver(HunterClient("key")).resolve("Jane Doe", "Acme")) is None
