"""Notification presenter tests — stacking, timers, renderer isolation."""

import asyncio

import pytest

from stocksync.client.notifications import NotificationPresenter, Severity


def test_notifications_stack_newest_last():
    presenter = NotificationPresenter()
    presenter.show("Connected", "Real-time updates enabled", Severity.SUCCESS)
    presenter.show("New Product Added", "Cement added to inventory")

    assert [n.title for n in presenter.active] == ["Connected", "New Product Added"]


def test_identical_notifications_are_not_deduplicated():
    presenter = NotificationPresenter()
    first = presenter.show("Stock Updated", "Inventory updated after sale")
    second = presenter.show("Stock Updated", "Inventory updated after sale")

    assert first.id != second.id
    assert len(presenter.active) == 2


def test_severity_accepts_plain_strings():
    presenter = NotificationPresenter()
    assert presenter.show("Oops", "x", "error").severity is Severity.ERROR
    assert presenter.show("Odd", "x", "shouting").severity is Severity.INFO


def test_renderer_receives_each_notification():
    rendered = []
    presenter = NotificationPresenter(renderer=rendered.append)

    note = presenter.show("New Sale!", "Bill #10 - ₹500.00 by Ravi", Severity.SUCCESS)

    assert rendered == [note]


def test_renderer_failure_is_contained():
    def broken(notification):
        raise RuntimeError("no display")

    presenter = NotificationPresenter(renderer=broken)
    note = presenter.show("Disconnected", "Attempting to reconnect...", Severity.WARNING)

    assert presenter.active == (note,)


def test_without_event_loop_dismiss_is_manual():
    dismissed = []
    presenter = NotificationPresenter(on_dismiss=dismissed.append)
    note = presenter.show("Product Removed", "Plywood removed from inventory")

    assert presenter.active == (note,)

    presenter.dismiss(note.id)

    assert presenter.active == ()
    assert [n.id for n in dismissed] == [note.id]


@pytest.mark.asyncio
async def test_auto_dismiss_after_duration_and_transition():
    dismissed = []
    presenter = NotificationPresenter(on_dismiss=dismissed.append, duration=0.05, transition=0.3)

    note = presenter.show("Connected", "Real-time updates enabled")
    assert presenter.active[0].dismissing is False

    await asyncio.sleep(0.1)
    # Past the display time, inside the exit transition.
    assert presenter.active[0].dismissing is True
    assert dismissed == []

    await asyncio.sleep(0.4)
    assert presenter.active == ()
    assert [n.id for n in dismissed] == [note.id]


@pytest.mark.asyncio
async def test_manual_dismiss_cancels_display_timer():
    presenter = NotificationPresenter(duration=10, transition=0.01)
    note = presenter.show("Connection Failed", "Please refresh the page", Severity.ERROR)

    presenter.dismiss(note.id)
    assert presenter.active[0].dismissing is True

    await asyncio.sleep(0.05)
    assert presenter.active == ()


@pytest.mark.asyncio
async def test_clear_drops_everything_and_cancels_timers():
    dismissed = []
    presenter = NotificationPresenter(on_dismiss=dismissed.append, duration=0.01, transition=0.01)
    presenter.show("One", "1")
    presenter.show("Two", "2")

    presenter.clear()
    await asyncio.sleep(0.05)

    assert presenter.active == ()
    assert dismissed == []
