import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from testsuites.ui_testing.framework.element_actions import MASK, RetryConfig, normalize_label, with_retry
from testsuites.ui_testing.framework.errors import (
    ActionTimeout,
    ElementNotFound,
    NoConfirmation,
    OptionNotFound,
    VerificationMismatch,
)
from testsuites.ui_testing.framework.locator_descriptor import LocatorDescriptor
from testsuites.ui_testing.pages import elements as el
from testsuites.unit.fake_hrm import BASE_URL
from testsuites.unit.fake_page import FakeLocator, FakeNode


NAME_INPUT = LocatorDescriptor.of("Name input", "#name")
AGREE = LocatorDescriptor.of("Agree checkbox", ".agree label")
GO = LocatorDescriptor.of("Go button", "#go")


async def _open_add_form(hrm, fake_page):
    hrm.logged_in = True
    await fake_page.goto(f"{BASE_URL}/admin/saveSystemUser")


def test_normalize_label():
    assert normalize_label("  Jane \n Doe ") == "jane doe"
    assert normalize_label(None) == ""


@pytest.mark.asyncio
async def test_click_resolves_and_clicks(fake_page, actions):
    button = FakeNode("button", css={"#go"})
    fake_page.show(button)

    await actions.click(GO)

    assert button.clicks == 1


@pytest.mark.asyncio
async def test_click_retries_transient_driver_error(fake_page, actions):
    calls = []

    def flaky(node):
        calls.append(node)
        if len(calls) == 1:
            raise PlaywrightError("Element is not attached to the DOM")

    fake_page.show(FakeNode("button", css={"#go"}, on_click=flaky))

    await actions.click(GO)

    assert len(calls) == 2


@pytest.mark.asyncio
async def test_click_gives_up_after_max_attempts(fake_page, actions):
    def broken(node):
        raise PlaywrightError("Element is not attached to the DOM")

    button = FakeNode("button", css={"#go"}, on_click=broken)
    fake_page.show(button)

    with pytest.raises(ActionTimeout) as exc_info:
        await actions.click(GO)
    assert "not attached" in str(exc_info.value)
    assert button.clicks == actions.retry_config.max_attempts


@pytest.mark.asyncio
async def test_click_on_missing_element(fake_page, actions):
    fake_page.show(FakeNode("div"))

    with pytest.raises(ElementNotFound):
        await actions.click(GO, timeout_ms=50)


@pytest.mark.asyncio
async def test_click_on_disabled_element(fake_page, actions):
    fake_page.show(FakeNode("button", css={"#go"}, enabled=False))

    with pytest.raises(ActionTimeout) as exc_info:
        await actions.click(GO, timeout_ms=50)
    assert exc_info.value.descriptor == "Go button"


@pytest.mark.asyncio
async def test_retry_skips_timeouts():
    calls = []

    @with_retry(RetryConfig(max_attempts=3, delay_ms=1))
    async def times_out():
        calls.append(1)
        raise PlaywrightTimeoutError("Timeout 100ms exceeded")

    with pytest.raises(PlaywrightTimeoutError):
        await times_out()
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_fill_reads_value_back(fake_page, actions):
    field = FakeNode("input", css={"#name"}, value="old")
    fake_page.show(field)

    await actions.fill(NAME_INPUT, "Jane")

    assert field.value == "Jane"


@pytest.mark.asyncio
async def test_fill_mismatch_is_reported(fake_page, actions):
    def shout(node, value):
        node.value = value.upper()

    fake_page.show(FakeNode("input", css={"#name"}, on_fill=shout))

    with pytest.raises(VerificationMismatch) as exc_info:
        await actions.fill(NAME_INPUT, "jane")

    assert exc_info.value.expected == "jane"
    assert exc_info.value.actual == "JANE"


@pytest.mark.asyncio
async def test_fill_mismatch_masks_sensitive_values(fake_page, actions):
    def truncate(node, value):
        node.value = value[:3]

    fake_page.show(FakeNode("input", css={"#name"}, on_fill=truncate))

    with pytest.raises(VerificationMismatch) as exc_info:
        await actions.fill(NAME_INPUT, "s3cret-pass", sensitive=True)

    assert exc_info.value.expected == MASK
    assert exc_info.value.actual == MASK
    assert "s3c" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_fill_accepts_late_settling_value(fake_page, actions):
    def settle_later(node, value):
        if not value:
            node.value = value
            return
        asyncio.get_running_loop().call_later(0.03, setattr, node, "value", value)

    field = FakeNode("input", css={"#name"}, on_fill=settle_later)
    fake_page.show(field)

    await actions.fill(NAME_INPUT, "Jane")

    assert field.value == "Jane"


@pytest.mark.asyncio
async def test_select_option_case_insensitive(hrm, fake_page, actions):
    await _open_add_form(hrm, fake_page)

    await actions.select_option(el.FORM_ROLE, "ess", el.SELECT_OPTIONS)

    assert hrm.form.role == "ESS"
    assert hrm.form.open_select is None


@pytest.mark.asyncio
async def test_select_option_not_offered(hrm, fake_page, actions):
    await _open_add_form(hrm, fake_page)

    with pytest.raises(OptionNotFound) as exc_info:
        await actions.select_option(el.FORM_STATUS, "Suspended", el.SELECT_OPTIONS)

    assert exc_info.value.option == "Suspended"
    assert exc_info.value.seen == ["-- select --", "enabled", "disabled"]


@pytest.mark.asyncio
async def test_autocomplete_waits_out_pending_placeholder(hrm, fake_page, actions):
    await _open_add_form(hrm, fake_page)

    await actions.pick_autocomplete(el.FORM_EMPLOYEE_NAME, "jane doe", el.AUTOCOMPLETE_OPTIONS)

    assert hrm.form.employee_selected == "Jane Doe"


@pytest.mark.asyncio
async def test_autocomplete_never_picks_partial_match(hrm, fake_page, actions):
    hrm.employees = ["Jane Doe Smith"]
    await _open_add_form(hrm, fake_page)

    with pytest.raises(OptionNotFound) as exc_info:
        await actions.pick_autocomplete(el.FORM_EMPLOYEE_NAME, "Jane Doe", el.AUTOCOMPLETE_OPTIONS)

    assert exc_info.value.seen == ["jane doe smith"]
    assert hrm.form.employee_selected is None


@pytest.mark.asyncio
async def test_autocomplete_still_searching_is_not_an_option(hrm, fake_page, actions):
    hrm.delay_s = 5
    await _open_add_form(hrm, fake_page)

    with pytest.raises(OptionNotFound) as exc_info:
        await actions.pick_autocomplete(el.FORM_EMPLOYEE_NAME, "Jane Doe", el.AUTOCOMPLETE_OPTIONS, timeout_ms=300)

    assert exc_info.value.seen == []


@pytest.mark.asyncio
async def test_set_checkbox_only_clicks_when_needed(fake_page, actions):
    box = FakeNode("label", css={".agree label"}, checked=False)
    fake_page.show(FakeNode("div", css={".agree"}, children=[box]))

    await actions.set_checkbox(AGREE, True)
    await actions.set_checkbox(AGREE, True)

    assert box.checked is True
    assert box.clicks == 1

    await actions.set_checkbox(AGREE, False)
    assert box.checked is False


@pytest.mark.asyncio
async def test_set_checkbox_that_does_not_follow(fake_page, actions):
    box = FakeNode("label", css={".agree label"}, checked=False, on_click=lambda node: None)
    fake_page.show(box)

    with pytest.raises(VerificationMismatch):
        await actions.set_checkbox(AGREE, True)


@pytest.mark.asyncio
async def test_success_signal_shown_later(fake_page, actions):
    def toast():
        fake_page.show(FakeNode("div", css={".oxd-toast--success"}, text="Successfully Saved"))

    asyncio.get_running_loop().call_later(0.05, toast)

    await actions.wait_for_success_signal(el.SUCCESS_TOAST, operation="save", timeout_ms=500)


@pytest.mark.asyncio
async def test_success_signal_stacked_toasts_count(fake_page, actions):
    fake_page.show(
        FakeNode("div", css={".oxd-toast--success"}, text="Successfully Saved"),
        FakeNode("div", css={".oxd-toast--success"}, text="Successfully Updated"),
    )

    await actions.wait_for_success_signal(el.SUCCESS_TOAST, operation="save", timeout_ms=0)


@pytest.mark.asyncio
async def test_missing_success_signal(fake_page, actions):
    fake_page.show(FakeNode("div", css={".oxd-toast--error"}, text="Failed"))

    with pytest.raises(NoConfirmation) as exc_info:
        await actions.wait_for_success_signal(el.SUCCESS_TOAST, operation="delete user bob", timeout_ms=50)

    assert exc_info.value.operation == "delete user bob"


@pytest.mark.asyncio
async def test_wait_until_hidden(fake_page, actions):
    spinner = FakeNode("div", css={".oxd-loading-spinner"})
    fake_page.show(spinner)

    assert not await actions.wait_until_hidden(el.LOADER, timeout_ms=30)

    asyncio.get_running_loop().call_later(0.03, setattr, spinner, "visible", False)
    assert await actions.wait_until_hidden(el.LOADER, timeout_ms=500)


@pytest.mark.asyncio
async def test_get_text_collapses_whitespace(fake_page, actions):
    fake_page.show(FakeNode("p", css={"#go"}, text="  Invalid \n  credentials "))

    assert await actions.get_text(GO) == "Invalid credentials"


@pytest.mark.asyncio
async def test_visible_texts_skips_hidden_elements(fake_page, actions):
    fake_page.show(
        FakeNode("span", css={".msg"}, text=" Required "),
        FakeNode("span", css={".msg"}, text="Hidden", visible=False),
        FakeNode("span", css={".msg"}, text="Already  exists"),
    )

    assert await actions.visible_texts(LocatorDescriptor.of("Messages", ".msg")) == ["Required", "Already exists"]


@pytest.mark.asyncio
async def test_text_reads_translate_driver_errors(fake_page, actions, monkeypatch):
    fake_page.show(FakeNode("span", css={".msg"}, text="Saved"))
    message = LocatorDescriptor.of("Message", ".msg")

    async def detached(self, timeout=None):
        raise PlaywrightTimeoutError("Timeout 150ms exceeded.\n  waiting for locator('.msg')")

    monkeypatch.setattr(FakeLocator, "inner_text", detached)

    with pytest.raises(ActionTimeout) as exc_info:
        await actions.get_text(message)
    assert "read text" in str(exc_info.value)
    assert "Timeout 150ms exceeded." in str(exc_info.value)
    assert "waiting for locator" not in str(exc_info.value)

    with pytest.raises(ActionTimeout):
        await actions.visible_texts(message)
