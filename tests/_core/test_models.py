import pytest

from etagger import ExchangeContext, Request, disable_content_caching, get_exchange_context
from etagger._core.models import EXCHANGE_KEY


def test_request_owns_its_context():
    first = Request("GET", "https://example.com/")
    second = Request("GET", "https://example.com/")

    disable_content_caching(first)

    assert get_exchange_context(first) is first.context
    assert first.context.content_caching_disabled
    assert not second.context.content_caching_disabled


def test_context_is_attached_to_scopes():
    scope = {"type": "http"}

    context = get_exchange_context(scope)

    assert scope[EXCHANGE_KEY] is context
    assert get_exchange_context(scope) is context


def test_disable_content_caching_uses_published_context():
    context = ExchangeContext()
    environ = {EXCHANGE_KEY: context}

    disable_content_caching(environ)

    assert context.content_caching_disabled


def test_scope_attribute_is_used():
    class StarletteLikeRequest:
        def __init__(self) -> None:
            self.scope = {"type": "http"}

    request = StarletteLikeRequest()

    disable_content_caching(request)

    assert request.scope[EXCHANGE_KEY].content_caching_disabled


def test_unsupported_request_type():
    with pytest.raises(TypeError, match="Cannot find an exchange context on 'int'"):
        get_exchange_context(42)


def test_async_lifecycle():
    context = ExchangeContext()

    context.start_async()
    assert context.async_started
    assert not context.async_dispatch

    context.begin_async_dispatch()
    assert not context.async_started
    assert context.async_dispatch
