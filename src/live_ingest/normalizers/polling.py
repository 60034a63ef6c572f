"""
YouTube Data API resources -> signals.
"""

from typing import Any, Dict, List, Mapping

from loguru import logger

from ..config_manager.youtube import DEFAULT_CURRENCY_RATES
from ..events import Provider, Viewer
from .base import EventNormalizer
from .currency import DEFAULT_RATE, convert_to_jpy
from .signals import (
    BadgeSignal,
    ChatSignal,
    ConnectedSignal,
    GiftSignal,
    LikeSignal,
    Signal,
    StreamEndSignal,
    SubscribeSignal,
    ViewerBadges,
)
from .text_scan import extract_json_string
from .wire import LiveChatMessage, VideoResource


VIDEO_KIND = "youtube#video"
CHAT_MESSAGE_KIND = "youtube#liveChatMessage"

PAID_TYPES = {"superChatEvent", "superStickerEvent"}
NEW_SPONSOR_TYPE = "newSponsorEvent"
MEMBER_MILESTONE_TYPE = "memberMilestoneChatEvent"
CHAT_ENDED_TYPE = "chatEndedEvent"


class PollingEventNormalizer(EventNormalizer):
    provider = Provider.YOUTUBE

    def __init__(
        self,
        currency_rates: Mapping[str, float] = DEFAULT_CURRENCY_RATES,
        default_currency_rate: float = DEFAULT_RATE,
    ):
        self.currency_rates = dict(currency_rates)
        self.default_currency_rate = default_currency_rate

    def _normalize(self, data: Dict[str, Any], raw: str) -> List[Signal]:
        kind = data.get("kind", "")
        if kind == VIDEO_KIND:
            return self._video(VideoResource.model_validate(data))
        if kind == CHAT_MESSAGE_KIND or "snippet" in data:
            return self._chat_message(LiveChatMessage.model_validate(data), raw)
        logger.debug(f"[YouTube] Ignoring resource kind '{kind}'")
        return []

    def _video(self, video: VideoResource) -> List[Signal]:
        signals: List[Signal] = []
        details = video.live_streaming_details
        if details is not None and details.active_live_chat_id:
            signals.append(ConnectedSignal(room_id=details.active_live_chat_id))
        if video.statistics is not None and video.statistics.like_count is not None:
            signals.append(LikeSignal(total=video.statistics.like_count))
        return signals

    @staticmethod
    def viewer(msg: LiveChatMessage, raw: str = "") -> Viewer:
        author = msg.author_details
        name = author.display_name
        if name.startswith("@"):
            name = name[1:]
        avatar = author.profile_image_url
        if not avatar and raw:
            avatar = extract_json_string(raw, "profileImageUrl") or ""
        return Viewer(id=author.channel_id or name, name=name, avatar_url=avatar)

    def _chat_message(self, msg: LiveChatMessage, raw: str) -> List[Signal]:
        msg_type = msg.snippet.type
        if msg_type == CHAT_ENDED_TYPE:
            return [StreamEndSignal()]

        viewer = self.viewer(msg, raw)
        badges = ViewerBadges(
            is_subscriber=msg.author_details.is_chat_sponsor
            or msg_type == MEMBER_MILESTONE_TYPE
        )
        signals: List[Signal] = []

        if msg_type in PAID_TYPES:
            details = msg.snippet.paid_details
            if details is not None:
                amount = convert_to_jpy(
                    details.amount_micros,
                    details.currency,
                    self.currency_rates,
                    self.default_currency_rate,
                )
                display = details.amount_display_string or f"¥{amount}"
                signals.append(
                    GiftSignal(
                        viewer=viewer,
                        value=amount,
                        label="Super Sticker" if msg_type == "superStickerEvent" else "Super Chat",
                        display=display,
                        badges=badges,
                    )
                )
        elif msg_type == NEW_SPONSOR_TYPE:
            signals.append(SubscribeSignal(viewer))

        text = msg.snippet.display_message
        if text:
            signals.append(ChatSignal(viewer, text, badges))
        elif badges.is_subscriber:
            signals.append(BadgeSignal(viewer, badges))
        return signals
