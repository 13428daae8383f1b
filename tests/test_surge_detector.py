from src.core.config import DetectionConfig
from src.core.history_store import HistoryStore
from src.core.surge_detector import SurgeDetector
from src.models.market import Tick


def _tick(price: float, volume: float = 2_000_000.0, symbol: str = "FOOUSDT") -> Tick:
    return Tick(symbol=symbol, last_price=price, quote_volume=volume)


def _detector(max_len: int = 120) -> SurgeDetector:
    return SurgeDetector(HistoryStore(), max_history_length=max_len)


CFG = DetectionConfig(time_window_seconds=60, percentage_threshold=3.0, min_volume_usdt=1_000_000)


def test_first_sample_never_alerts() -> None:
    det = _detector()
    assert det.evaluate(_tick(100.0), CFG, now=0) is None
    assert len(det.history.points("FOOUSDT")) == 1


def test_pump_within_window_alerts_with_signed_change() -> None:
    det = _detector()
    det.evaluate(_tick(100.0), CFG, now=0)

    alert = det.evaluate(_tick(103.5), CFG, now=30_000)

    assert alert is not None
    assert alert.symbol == "FOOUSDT"
    assert alert.id == "FOOUSDT-30000"
    assert alert.price_before == 100.0
    assert alert.price_now == 103.5
    assert abs(alert.percentage_change - 3.5) < 1e-9
    assert alert.is_positive
    assert alert.volume == 2_000_000.0
    assert alert.trade_status is None


def test_dump_alerts_as_negative() -> None:
    det = _detector()
    det.evaluate(_tick(100.0), CFG, now=0)

    alert = det.evaluate(_tick(90.0), CFG, now=10_000)

    assert alert is not None
    assert not alert.is_positive
    assert alert.percentage_change < 0


def test_threshold_boundary_is_inclusive() -> None:
    cfg = DetectionConfig(time_window_seconds=60, percentage_threshold=25.0, min_volume_usdt=0)
    det = _detector()
    det.evaluate(_tick(100.0), cfg, now=0)

    alert = det.evaluate(_tick(125.0), cfg, now=1_000)
    assert alert is not None
    assert alert.percentage_change == 25.0


def test_below_threshold_does_not_alert() -> None:
    det = _detector()
    det.evaluate(_tick(100.0), CFG, now=0)
    assert det.evaluate(_tick(102.0), CFG, now=1_000) is None


def test_comparison_point_is_oldest_inside_window() -> None:
    det = _detector()
    det.evaluate(_tick(100.0), CFG, now=0)
    det.evaluate(_tick(101.0), CFG, now=30_000)

    # t=0 has left the 60s window; the t=30s sample is the reference.
    assert det.evaluate(_tick(103.5), CFG, now=65_000) is None


def test_end_to_end_window_walkthrough() -> None:
    det = _detector()
    assert det.evaluate(_tick(100.0), CFG, now=0) is None

    first = det.evaluate(_tick(103.5), CFG, now=30_000)
    assert first is not None

    # At 65s the reference is the 30s sample (103.5): +0.48% only.
    assert det.evaluate(_tick(104.0), CFG, now=65_000) is None


def test_cooldown_is_exclusive_at_window_boundary() -> None:
    det = _detector()
    det.evaluate(_tick(100.0), CFG, now=0)
    assert det.evaluate(_tick(110.0), CFG, now=1_000) is not None

    det.evaluate(_tick(100.0), CFG, now=50_000)
    # Exactly one window after the last alert: still suppressed.
    assert det.evaluate(_tick(120.0), CFG, now=61_000) is None
    # One millisecond later the symbol re-arms.
    assert det.evaluate(_tick(130.0), CFG, now=61_001) is not None
    assert det.last_alert_time("FOOUSDT") == 61_001


def test_second_qualifying_tick_in_same_instant_is_suppressed() -> None:
    det = _detector()
    det.evaluate(_tick(100.0), CFG, now=0)

    assert det.evaluate(_tick(110.0), CFG, now=5_000) is not None
    assert det.evaluate(_tick(111.0), CFG, now=5_000) is None


def test_low_volume_ticks_are_never_recorded() -> None:
    det = _detector()

    assert det.evaluate(_tick(100.0, volume=500_000), CFG, now=0) is None
    assert det.history.points("FOOUSDT") == []

    # Volume recovers later, but the thin tick never became a reference.
    assert det.evaluate(_tick(110.0), CFG, now=10_000) is None
    assert len(det.history.points("FOOUSDT")) == 1


def test_symbols_are_independent() -> None:
    det = _detector()
    det.evaluate(_tick(100.0, symbol="AAAUSDT"), CFG, now=0)
    det.evaluate(_tick(10.0, symbol="BBBUSDT"), CFG, now=0)

    assert det.evaluate(_tick(110.0, symbol="AAAUSDT"), CFG, now=1_000) is not None
    assert det.evaluate(_tick(11.0, symbol="BBBUSDT"), CFG, now=1_000) is not None


def test_opportunistic_prune_never_drops_window_reference() -> None:
    det = _detector(max_len=3)
    for i in range(6):
        det.evaluate(_tick(100.0), CFG, now=i * 1_000)

    # All samples are inside the retention horizon, so nothing is dropped yet.
    assert len(det.history.points("FOOUSDT")) == 6

    det.evaluate(_tick(100.0), CFG, now=125_000)
    points = det.history.points("FOOUSDT")
    assert [p.timestamp for p in points] == [5_000, 125_000]


def test_forget_clears_cooldown_stamp() -> None:
    det = _detector()
    det.evaluate(_tick(100.0), CFG, now=0)
    det.evaluate(_tick(110.0), CFG, now=1_000)

    det.forget("FOOUSDT")
    assert det.last_alert_time("FOOUSDT") is None


def test_prune_keeps_retention_horizon_and_window_reference() -> None:
    det = _detector(max_len=120)
    for i in range(300):
        det.evaluate(_tick(100.0), CFG, now=i * 1_000)

    now = 299_000
    points = det.history.points("FOOUSDT")
    assert points[0].timestamp >= now - CFG.retention_ms
    assert len(points) <= 120 + 1
    assert det.history.oldest_at_or_after("FOOUSDT", now - CFG.window_ms).timestamp == now - CFG.window_ms


def test_fast_ticks_are_bounded_by_retention_not_length() -> None:
    # Ten ticks a second: the length cap only triggers a prune, it never
    # truncates inside the retention horizon.
    det = _detector(max_len=120)
    for i in range(3_000):
        det.evaluate(_tick(100.0), CFG, now=i * 100)

    now = 299_900
    points = det.history.points("FOOUSDT")
    assert points[0].timestamp == now - CFG.retention_ms
    assert len(points) == 1_201
    assert det.history.oldest_at_or_after("FOOUSDT", now - CFG.window_ms).timestamp == now - CFG.window_ms
