from __future__ import annotations

import pytest

from pywaweb.exceptions import ValidationError
from pywaweb.messages import (
    ButtonsContent,
    ContactCardContent,
    ContactCardListContent,
    ListContent,
    LocationContent,
    MediaContent,
    SendOptions,
    TextContent,
    coerce_content,
    resolve_outbound,
)
from pywaweb.structures import Buttons, ListMessage, Location, MessageMedia, contact_from_dict


def _contact(n: int):
    return contact_from_dict({"id": {"_serialized": f"1555000000{n}@c.us"}, "isUser": True})


def _media() -> MessageMedia:
    return MessageMedia.from_bytes(b"\x89PNG....", mimetype="image/png", filename="a.png")


def test_coerce_loose_values() -> None:
    assert coerce_content("hi") == TextContent("hi")
    assert isinstance(coerce_content(_media()), MediaContent)
    assert isinstance(coerce_content(Location(1.0, 2.0)), LocationContent)
    assert isinstance(coerce_content(_contact(1)), ContactCardContent)
    assert isinstance(coerce_content([_contact(1), _contact(2)]), ContactCardListContent)
    assert isinstance(coerce_content(Buttons("b", [{"body": "ok"}])), ButtonsContent)
    lm = ListMessage("b", "pick", [{"title": "s", "rows": [{"title": "r"}]}])
    assert isinstance(coerce_content(lm), ListContent)


@pytest.mark.parametrize("bad", [[], ["15550000001@c.us"], [object()], 42])
def test_coerce_rejects_unsupported(bad) -> None:
    with pytest.raises(ValidationError):
        coerce_content(bad)


def test_four_contacts_keep_input_order() -> None:
    contacts = [_contact(n) for n in (4, 1, 3, 2)]
    resolved = resolve_outbound(coerce_content(contacts), SendOptions())

    assert resolved.body == ""
    assert resolved.options["contactCardList"] == [
        "15550000004@c.us",
        "15550000001@c.us",
        "15550000003@c.us",
        "15550000002@c.us",
    ]
    assert "contactCard" not in resolved.options
    assert resolved.attachment is None


def test_text_with_media_option_becomes_caption() -> None:
    media = _media()
    resolved = resolve_outbound(TextContent("look"), SendOptions(media=media))

    assert resolved.body == ""
    assert resolved.attachment is media
    assert resolved.options["caption"] == "look"


def test_media_content_caption_overrides_option() -> None:
    resolved = resolve_outbound(
        MediaContent(_media(), caption="inline"), SendOptions(caption="from options")
    )
    assert resolved.options["caption"] == "inline"


def test_plain_text() -> None:
    resolved = resolve_outbound(
        TextContent("hello"),
        SendOptions(link_preview=True, quoted_message_id="true_x_1", mentions=[_contact(7)]),
    )
    assert resolved.body == "hello"
    assert resolved.attachment is None
    assert resolved.options["linkPreview"] is True
    assert resolved.options["quotedMessageId"] == "true_x_1"
    assert resolved.options["mentionedJidList"] == ["15550000007@c.us"]
    for key in ("location", "contactCard", "contactCardList", "buttons", "list"):
        assert key not in resolved.options


def test_location_and_single_contact() -> None:
    loc = resolve_outbound(LocationContent(Location(52.5, 13.4, "Berlin")), SendOptions())
    assert loc.options["location"] == {"latitude": 52.5, "longitude": 13.4, "description": "Berlin"}

    card = resolve_outbound(ContactCardContent("15550000009@c.us"), SendOptions())
    assert card.options["contactCard"] == "15550000009@c.us"


def test_buttons_with_media_body_carry_attachment() -> None:
    media = _media()
    buttons = Buttons(media, [{"id": "yes", "body": "Yes"}, {"body": "No"}], title="T")
    resolved = resolve_outbound(ButtonsContent(buttons), SendOptions())

    assert resolved.attachment is media
    formatted = resolved.options["buttons"]["buttons"]
    assert formatted[0] == {"buttonId": "yes", "buttonText": {"displayText": "Yes"}, "type": 1}
    assert formatted[1]["buttonText"] == {"displayText": "No"}
    assert resolved.options["buttons"]["type"] == "image"


def test_list_message_rows_are_formatted() -> None:
    lm = ListMessage(
        "Choose",
        "Open",
        [{"title": "Drinks", "rows": [{"id": "tea", "title": "Tea", "description": "hot"}]}],
    )
    resolved = resolve_outbound(ListContent(lm), SendOptions())
    section = resolved.options["list"]["sections"][0]
    assert section["rows"] == [{"rowId": "tea", "title": "Tea", "description": "hot"}]


def test_empty_list_sections_rejected() -> None:
    with pytest.raises(ValidationError):
        resolve_outbound(ListContent(ListMessage("b", "open", [])), SendOptions())


def test_empty_buttons_rejected() -> None:
    with pytest.raises(ValidationError):
        resolve_outbound(ButtonsContent(Buttons("b", [])), SendOptions())
