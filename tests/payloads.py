"""Builders for raw provider payloads as they arrive on the wire."""
import json
from typing import List, Optional


def tiktok_user(user_id="1001", nickname="Viewer", unique_id="viewer_1", badges=None, **extra):
    user = {"userId": user_id, "nickname": nickname, "uniqueId": unique_id}
    if badges is not None:
        user["badges"] = badges
    user.update(extra)
    return user


def tiktok_event(event: str, user: Optional[dict] = None, **fields) -> str:
    """Serialize a broker message the way the broker sends it"""
    payload = {"event": event}
    if user is not None:
        payload["user"] = user
    payload.update(fields)
    return json.dumps(payload)


def youtube_item(
    msg_type: str = "textMessageEvent",
    text: str = "hello",
    channel_id: str = "UC123",
    display_name: str = "@Viewer",
    sponsor: bool = False,
    **snippet_extra,
) -> str:
    snippet = {"type": msg_type, "displayMessage": text}
    snippet.update(snippet_extra)
    return json.dumps(
        {
            "kind": "youtube#liveChatMessage",
            "id": "msg-1",
            "snippet": snippet,
            "authorDetails": {
                "channelId": channel_id,
                "displayName": display_name,
                "profileImageUrl": "https://yt3.example/avatar.jpg",
                "isChatSponsor": sponsor,
            },
        }
    )


def youtube_video(chat_id: str = "", like_count: Optional[int] = None) -> str:
    item = {"kind": "youtube#video", "id": "vid"}
    if chat_id:
        item["liveStreamingDetails"] = {"activeLiveChatId": chat_id}
    if like_count is not None:
        item["statistics"] = {"likeCount": str(like_count)}
    return json.dumps(item)


def put_all(pipeline, payloads: List[str]) -> None:
    for payload in payloads:
        pipeline.queue.put(payload)
