from live_ingest.events import Provider, Viewer
from live_ingest.gift_aggregator import GiftAggregator, amount_display
from live_ingest.tiers import classify_tier, level_tier

TIERS = [1, 10, 99, 500, 5000, 44999]


def _aggregator(**kwargs):
    return GiftAggregator(Provider.TIKTOK, TIERS, window_seconds=2.0, **kwargs)


def test_burst_within_window_is_one_event():
    aggregator = _aggregator()
    viewer = Viewer(id="V1", name="Viewer One")
    aggregator.add(viewer, 10, "Rose", now=0.0)
    aggregator.add(viewer, 15, "Rose", now=0.5)
    aggregator.add(viewer, 5, "Heart", now=1.0)

    assert aggregator.flush(now=2.9) == []
    events = aggregator.flush(now=3.0)

    assert len(events) == 1
    gift = events[0]
    assert gift.total_value == 30
    assert gift.tier == classify_tier(30, TIERS) == 1
    assert gift.label == "Heart"
    assert gift.display_text == "Heart (30 coins)"
    assert gift.gift_count == 3
    assert gift.timestamp == 1.0
    assert aggregator.pending_count() == 0


def test_gifts_separated_by_more_than_window_are_two_events():
    aggregator = _aggregator()
    viewer = Viewer(id="V1", name="Viewer One")

    aggregator.add(viewer, 10, "Rose", now=0.0)
    first = aggregator.flush(now=2.5)
    aggregator.add(viewer, 20, "Rose", now=2.6)
    second = aggregator.flush(now=5.0)

    assert [e.total_value for e in first] == [10]
    assert [e.total_value for e in second] == [20]


def test_viewers_are_aggregated_independently():
    aggregator = _aggregator()
    a = Viewer(id="A", name="A")
    b = Viewer(id="B", name="B")
    aggregator.add(a, 1, "Rose", now=0.0)
    aggregator.add(b, 100, "Lion", now=1.5)

    events = aggregator.flush(now=2.0)
    assert [e.viewer.id for e in events] == ["A"]
    assert aggregator.pending_for("B").total_value == 100


def test_latest_display_name_wins():
    aggregator = _aggregator()
    aggregator.add(Viewer(id="V1", name="old"), 1, "Rose", now=0.0)
    aggregator.add(Viewer(id="V1", name="new"), 1, "Rose", now=0.1)
    (event,) = aggregator.flush(now=10.0)
    assert event.viewer.name == "new"


def test_amount_display_uses_provider_string_for_single_gift():
    aggregator = GiftAggregator(
        Provider.YOUTUBE, [200, 500, 1000, 5000, 10000], display_formatter=amount_display
    )
    viewer = Viewer(id="UC1", name="fan")
    aggregator.add(viewer, 750, "Super Chat", now=0.0, display="$5.00")
    (single,) = aggregator.flush(now=5.0)
    assert single.display_text == "$5.00"
    assert single.tier == 1

    aggregator.add(viewer, 750, "Super Chat", now=10.0, display="$5.00")
    aggregator.add(viewer, 300, "Super Chat", now=10.5, display="¥300")
    (combined,) = aggregator.flush(now=20.0)
    assert combined.display_text == "Super Chat x2 (¥1050)"
    assert combined.tier == 2


def test_tier_classification_is_monotonic():
    previous = 0
    for value in range(0, 60000, 7):
        tier = classify_tier(value, TIERS)
        assert tier >= previous
        previous = tier


def test_tier_boundaries():
    assert classify_tier(0, TIERS) == 0
    assert classify_tier(9, TIERS) == 0
    assert classify_tier(10, TIERS) == 1
    assert classify_tier(499, TIERS) == 2
    assert classify_tier(44999, TIERS) == 5
    assert classify_tier(10**9, TIERS) == 5


def test_level_tier():
    floors = [1, 5, 10, 18]
    assert level_tier(1, floors) == 0
    assert level_tier(4, floors) == 0
    assert level_tier(5, floors) == 1
    assert level_tier(17, floors) == 2
    assert level_tier(50, floors) == 3
