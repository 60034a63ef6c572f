"""
Tests for the provider normalizers: wire-name mapping, lenient coercion,
avatar fallback and currency conversion.
"""
import json

import pytest

from live_ingest.errors import PayloadError
from live_ingest.normalizers import (
    BadgeSignal,
    ChatSignal,
    ConnectedSignal,
    DisconnectedSignal,
    ErrorSignal,
    FollowSignal,
    GiftSignal,
    LikeSignal,
    PollingEventNormalizer,
    StreamEndSignal,
    StreamingEventNormalizer,
    SubscribeSignal,
    ViewerBadges,
)
from live_ingest.normalizers.currency import UNPARSEABLE_AMOUNT_JPY, convert_to_jpy
from live_ingest.normalizers.text_scan import extract_json_string
from live_ingest.transport.base import DisconnectReason, disconnected_marker

from payloads import tiktok_event, tiktok_user, youtube_item


@pytest.fixture
def tiktok():
    return StreamingEventNormalizer()


@pytest.fixture
def youtube():
    return PollingEventNormalizer()


# ---------------------------------------------------------------------------
# TikTok broker payloads
# ---------------------------------------------------------------------------


def test_chat_maps_wire_names(tiktok):
    raw = tiktok_event(
        "chat",
        tiktok_user(user_id="42", nickname="Nick", unique_id="nick_u"),
        comment="hello",
    )
    (signal,) = tiktok.normalize(raw)

    assert isinstance(signal, ChatSignal)
    assert signal.viewer.id == "42"
    assert signal.viewer.name == "Nick"
    assert signal.text == "hello"
    assert signal.badges == ViewerBadges()


def test_numeric_user_id_is_coerced_to_text(tiktok):
    raw = json.dumps({"event": "chat", "comment": "x", "user": {"userId": 12345, "nickname": "A"}})
    (signal,) = tiktok.normalize(raw)
    assert signal.viewer.id == "12345"


def test_viewer_name_fallbacks(tiktok):
    (by_unique,) = tiktok.normalize(
        tiktok_event("chat", {"userId": "7", "uniqueId": "handle"}, comment="x")
    )
    assert by_unique.viewer.name == "handle"

    (anonymous,) = tiktok.normalize(tiktok_event("chat", comment="x"))
    assert anonymous.viewer.name == "Anonymous"


def test_avatar_recovered_from_array_shape(tiktok):
    user = tiktok_user(profilePictureUrl=["https://cdn.example/1.jpg", "https://cdn.example/2.jpg"])
    (signal,) = tiktok.normalize(tiktok_event("chat", user, comment="hi"))
    assert signal.viewer.avatar_url == "https://cdn.example/1.jpg"


def test_avatar_plain_string(tiktok):
    user = tiktok_user(profilePictureUrl="https://cdn.example/a.jpg")
    (signal,) = tiktok.normalize(tiktok_event("chat", user, comment="hi"))
    assert signal.viewer.avatar_url == "https://cdn.example/a.jpg"


def test_gift_total_prefers_cumulative_total(tiktok):
    (signal,) = tiktok.normalize(
        tiktok_event(
            "gift", tiktok_user(), giftName="Rose", diamondCount=1, repeatCount=5, totalDiamondCount=30
        )
    )
    assert isinstance(signal, GiftSignal)
    assert signal.value == 30
    assert signal.label == "Rose"


def test_gift_total_falls_back_to_unit_times_repeats(tiktok):
    (repeated,) = tiktok.normalize(
        tiktok_event("gift", tiktok_user(), diamondCount=5, repeatCount=3, totalDiamondCount=0)
    )
    assert repeated.value == 15
    assert repeated.label == "Gift"

    (single,) = tiktok.normalize(tiktok_event("gift", tiktok_user(), diamondCount=5))
    assert single.value == 5


def test_out_of_range_numbers_coerce_to_zero(tiktok):
    (signal,) = tiktok.normalize(
        tiktok_event(
            "gift", tiktok_user(), giftName="Rose", diamondCount="1e999", totalDiamondCount=30
        )
    )
    assert signal.value == 30

    (like,) = tiktok.normalize(
        tiktok_event("like", tiktok_user(), likeCount=float("inf"), totalLikeCount=120)
    )
    assert like == LikeSignal(total=120, delta=0)


def test_badges_fan_club_level_floor_and_subscriber(tiktok):
    user = tiktok_user(
        badges=[{"type": "fan_club", "level": 0}, {"type": "subscriber"}, "garbage"]
    )
    (signal,) = tiktok.normalize(tiktok_event("chat", user, comment="hi"))
    assert signal.badges == ViewerBadges(is_subscriber=True, fan_club_level=1)


def test_like_carries_total_and_delta(tiktok):
    (signal,) = tiktok.normalize(tiktok_event("like", tiktok_user(), likeCount=20, totalLikeCount=120))
    assert signal == LikeSignal(total=120, delta=20)


def test_like_without_total_is_ignored(tiktok):
    assert tiktok.normalize(tiktok_event("like", tiktok_user(), likeCount=5)) == []


def test_lifecycle_and_relationship_events(tiktok):
    assert tiktok.normalize(tiktok_event("connected", roomId="7300")) == [ConnectedSignal("7300")]
    assert tiktok.normalize(tiktok_event("streamEnd")) == [StreamEndSignal()]
    assert tiktok.normalize(tiktok_event("error", message="offline")) == [ErrorSignal("offline")]
    assert isinstance(tiktok.normalize(tiktok_event("follow", tiktok_user()))[0], FollowSignal)
    assert isinstance(tiktok.normalize(tiktok_event("subscribe", tiktok_user()))[0], SubscribeSignal)


def test_member_without_badges_yields_nothing(tiktok):
    assert tiktok.normalize(tiktok_event("member", tiktok_user())) == []

    user = tiktok_user(badges=[{"type": "fan_club", "level": 9}])
    (signal,) = tiktok.normalize(tiktok_event("member", user))
    assert isinstance(signal, BadgeSignal)
    assert signal.badges.fan_club_level == 9


def test_unknown_event_type_is_ignored(tiktok):
    assert tiktok.normalize(tiktok_event("roomUser", viewerCount=10)) == []


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"text"', ""])
def test_malformed_payload_raises(tiktok, raw):
    with pytest.raises(PayloadError):
        tiktok.normalize(raw)


def test_disconnected_marker(tiktok, youtube):
    raw = disconnected_marker(DisconnectReason.AUTH, "token revoked")
    expected = [DisconnectedSignal(DisconnectReason.AUTH, "token revoked")]
    assert tiktok.normalize(raw) == expected
    assert youtube.normalize(raw) == expected


# ---------------------------------------------------------------------------
# YouTube resources
# ---------------------------------------------------------------------------


def test_text_message_strips_handle_prefix(youtube):
    (signal,) = youtube.normalize(youtube_item(text="hi", channel_id="UCabc", display_name="@fan"))
    assert isinstance(signal, ChatSignal)
    assert signal.viewer.id == "UCabc"
    assert signal.viewer.name == "fan"
    assert signal.viewer.avatar_url == "https://yt3.example/avatar.jpg"
    assert not signal.badges.is_subscriber


def test_member_chat_marks_subscriber(youtube):
    (signal,) = youtube.normalize(youtube_item(sponsor=True))
    assert signal.badges.is_subscriber


def test_member_milestone_without_text_is_badge_only(youtube):
    (signal,) = youtube.normalize(youtube_item(msg_type="memberMilestoneChatEvent", text=""))
    assert isinstance(signal, BadgeSignal)
    assert signal.badges.is_subscriber


def test_super_chat_converted_to_yen(youtube):
    raw = youtube_item(
        msg_type="superChatEvent",
        text="great stream",
        superChatDetails={"amountMicros": "5000000", "currency": "USD", "amountDisplayString": "$5.00"},
    )
    gift, chat = youtube.normalize(raw)
    assert isinstance(gift, GiftSignal)
    assert gift.value == 750
    assert gift.label == "Super Chat"
    assert gift.display == "$5.00"
    assert isinstance(chat, ChatSignal)


def test_super_sticker_label(youtube):
    raw = youtube_item(
        msg_type="superStickerEvent",
        text="",
        superStickerDetails={"amountMicros": "300000000", "currency": "JPY"},
    )
    (gift,) = youtube.normalize(raw)
    assert gift.label == "Super Sticker"
    assert gift.value == 300
    assert gift.display == "¥300"


def test_new_sponsor_is_subscribe_signal(youtube):
    signals = youtube.normalize(youtube_item(msg_type="newSponsorEvent", text="Welcome!"))
    assert isinstance(signals[0], SubscribeSignal)
    assert isinstance(signals[1], ChatSignal)


def test_chat_ended_is_stream_end(youtube):
    assert youtube.normalize(youtube_item(msg_type="chatEndedEvent", text="")) == [StreamEndSignal()]


def test_video_resource_yields_chat_id_and_likes(youtube):
    raw = json.dumps(
        {
            "kind": "youtube#video",
            "id": "vid",
            "liveStreamingDetails": {"activeLiveChatId": "chat-1"},
            "statistics": {"likeCount": "123"},
        }
    )
    assert youtube.normalize(raw) == [ConnectedSignal("chat-1"), LikeSignal(total=123)]


def test_wrong_shaped_sections_do_not_fail(youtube):
    raw = json.dumps({"kind": "youtube#liveChatMessage", "snippet": "oops", "authorDetails": None})
    assert youtube.normalize(raw) == []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def test_currency_conversion():
    assert convert_to_jpy("1000000", "JPY") == 1
    assert convert_to_jpy("10000000000", "KRW") == 1100
    assert convert_to_jpy("2000000", "XYZ") == 300
    assert convert_to_jpy("2000000", "eur") == 330
    assert convert_to_jpy("2000000", "XYZ", default_rate=100) == 200
    assert convert_to_jpy("abc", "USD") == UNPARSEABLE_AMOUNT_JPY
    assert convert_to_jpy(None, "USD") == UNPARSEABLE_AMOUNT_JPY


def test_extract_json_string():
    text = '{"a": 1, "url": "https:\\/\\/x.example\\/p.png", "list": ["first", "second"]}'
    assert extract_json_string(text, "url") == "https://x.example/p.png"
    assert extract_json_string(text, "list") == "first"
    assert extract_json_string(text, "a") is None
    assert extract_json_string(text, "missing") is None
