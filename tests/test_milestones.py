from live_ingest.milestones import NO_MILESTONE, MilestoneTracker

THRESHOLDS = [50, 200, 500, 1000, 3000]


def test_jump_emits_only_the_richest_milestone():
    tracker = MilestoneTracker(THRESHOLDS)
    assert tracker.update(0, 0) is None

    crossing = tracker.update(1000)
    assert crossing is not None
    assert crossing.index == 3
    assert crossing.threshold == 1000
    assert crossing.count == 1000


def test_milestone_is_never_emitted_twice():
    tracker = MilestoneTracker(THRESHOLDS)
    tracker.update(0, 0)
    assert tracker.update(250).index == 1
    assert tracker.update(250) is None
    assert tracker.update(260) is None
    # a lower diff never re-emits
    assert tracker.update(60) is None
    assert tracker.update(600).index == 2
    assert tracker.highest_index == 2


def test_baseline_is_first_total_minus_first_delta():
    tracker = MilestoneTracker(THRESHOLDS, relative_to_baseline=True)
    assert tracker.update(5000, 30) is None
    assert tracker.diff() == 30

    crossing = tracker.update(5020)
    assert crossing.index == 0
    assert crossing.count == 50
    assert tracker.likes_until_next() == 150


def test_absolute_counter_ignores_first_total():
    tracker = MilestoneTracker([50, 100, 200, 500, 1000], relative_to_baseline=False)
    crossing = tracker.update(120)
    assert crossing.index == 1
    assert crossing.count == 120


def test_reset_starts_a_new_session():
    tracker = MilestoneTracker(THRESHOLDS)
    tracker.update(0, 0)
    tracker.update(3000)
    assert tracker.likes_until_next() == 0

    tracker.reset()
    assert tracker.highest_index == NO_MILESTONE
    tracker.update(100, 0)
    assert tracker.update(160).index == 0
