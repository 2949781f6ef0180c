"""Model boundary tests: malformed duels never reach the statistics engine."""

import pytest
from helpers import make_duel

from models import EventStatistics, Statistics


class TestDuelRecordValidation:
    def test_valid(self):
        duel = make_duel(result="lose", turn_order="second")
        assert not duel.is_win

    @pytest.mark.parametrize("result", ["draw", "WIN", "", None])
    def test_invalid_result(self, result):
        with pytest.raises(ValueError):
            make_duel(result=result)

    @pytest.mark.parametrize("turn_order", ["third", "First", "", None])
    def test_invalid_turn_order(self, turn_order):
        with pytest.raises(ValueError):
            make_duel(turn_order=turn_order)

    def test_legacy_record_without_event(self):
        assert make_duel(event_id=None).event_id is None


class TestStatisticsShapes:
    def test_breakdowns_default_to_fresh_dicts(self):
        a = Statistics(0, 0, 0, 0.0, 0.0, 0.0)
        b = Statistics(0, 0, 0, 0.0, 0.0, 0.0)
        a.deck_stats[1] = None
        assert b.deck_stats == {}

    def test_event_statistics_is_statistics(self):
        stats = EventStatistics(0, 0, 0, 0.0, 0.0, 0.0, event_id=3, event_name="Locals")
        assert isinstance(stats, Statistics)
        assert stats.event_name == "Locals"
