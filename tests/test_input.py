"""
Tests for input functionality.
"""
import pytest


def events(connection, method):
    return [params for sent_method, params in connection.sent if sent_method == method]


@pytest.mark.asyncio
async def test_type_sends_key_down_and_up(page, connection):
    await page.keyboard.type("Hi")

    key_events = events(connection, "Input.dispatchKeyEvent")
    assert [(event["type"], event["key"]) for event in key_events] == [
        ("keyDown", "H"), ("keyUp", "H"),
        ("keyDown", "i"), ("keyUp", "i"),
    ]
    assert key_events[0]["code"] == "KeyH"
    assert key_events[0]["text"] == "H"


@pytest.mark.asyncio
async def test_non_ascii_text_is_inserted(page, connection):
    await page.keyboard.type("é")

    assert events(connection, "Input.insertText") == [{"text": "é"}]


@pytest.mark.asyncio
async def test_special_keys(page, connection):
    await page.keyboard.press("Enter")

    down, up = events(connection, "Input.dispatchKeyEvent")
    assert down["keyCode"] == 13
    assert down["code"] == "Enter"
    assert up["type"] == "keyUp"

    with pytest.raises(ValueError):
        await page.keyboard.press("NotAKey")


@pytest.mark.asyncio
async def test_modifiers_apply_while_held(page, connection):
    await page.keyboard.down("Shift")
    await page.mouse.click(5, 5)
    await page.keyboard.up("Shift")
    await page.mouse.click(5, 5)

    mouse_events = events(connection, "Input.dispatchMouseEvent")
    assert {event["modifiers"] for event in mouse_events[:3]} == {8}
    assert {event["modifiers"] for event in mouse_events[3:]} == {0}

    shift_down = events(connection, "Input.dispatchKeyEvent")[0]
    assert shift_down["type"] == "rawKeyDown"


@pytest.mark.asyncio
async def test_mouse_click(page, connection):
    await page.mouse.click(100, 50, button="right", click_count=2)

    mouse_events = events(connection, "Input.dispatchMouseEvent")
    assert [(e["type"], e["button"], e["clickCount"]) for e in mouse_events] == [
        ("mouseMoved", "none", 0),
        ("mousePressed", "right", 2),
        ("mouseReleased", "right", 2),
    ]
    assert (page.mouse.x, page.mouse.y) == (100, 50)


@pytest.mark.asyncio
async def test_mouse_move_in_steps(page, connection):
    await page.mouse.move(10, 20, steps=2)

    positions = [(e["x"], e["y"]) for e in events(connection, "Input.dispatchMouseEvent")]
    assert positions == [(5, 10), (10, 20)]


@pytest.mark.asyncio
async def test_touchscreen_tap(page, connection):
    await page.touchscreen.tap(10.4, 20.6)

    start, end = events(connection, "Input.dispatchTouchEvent")
    assert start["type"] == "touchStart"
    assert start["touchPoints"] == [{"x": 10, "y": 21}]
    assert end == {"type": "touchEnd", "touchPoints": [], "modifiers": 0}
