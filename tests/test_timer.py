"""Tests for the checklist timer."""

from brigade.engine.timer import ChecklistTimer, format_duration


class TestFormatDuration:
    def test_minutes_and_seconds(self):
        assert format_duration(0) == "00:00"
        assert format_duration(65.9) == "01:05"
        assert format_duration(3725) == "62:05"

    def test_negative_is_zero(self):
        assert format_duration(-5) == "00:00"


class TestChecklistTimer:
    """Tests for elapsed time and inactivity tracking."""

    def test_elapsed_and_stop(self, clock):
        timer = ChecklistTimer(10, clock=clock)
        timer.start()
        clock.advance(90)
        assert timer.elapsed_seconds == 90
        assert timer.stop() == 90
        clock.advance(1000)
        assert timer.elapsed_seconds == 90
        assert not timer.is_running

    def test_short_idle_gaps_keep_focus(self, clock):
        timer = ChecklistTimer(10, clock=clock)
        timer.start()
        for _ in range(5):
            clock.advance(299)
            timer.record_activity()
        timer.stop()
        assert not timer.had_inactivity_penalty
        assert timer.focus_bonus_eligible

    def test_five_minute_gap_costs_focus(self, clock):
        timer = ChecklistTimer(10, clock=clock)
        timer.start()
        clock.advance(300)
        timer.record_activity()
        clock.advance(10)
        timer.record_activity()
        timer.stop()
        assert timer.had_inactivity_penalty

    def test_penalty_is_visible_while_idle(self, clock):
        timer = ChecklistTimer(10, clock=clock)
        timer.start()
        clock.advance(301)
        assert timer.idle_seconds == 301
        assert timer.had_inactivity_penalty

    def test_speed_eligibility_and_warning(self, clock):
        timer = ChecklistTimer(10, clock=clock)
        timer.start()
        clock.advance(480)
        assert not timer.in_warning_zone
        clock.advance(1)
        assert timer.in_warning_zone
        assert timer.speed_bonus_eligible
        clock.advance(120)
        assert timer.is_overtime
        assert not timer.speed_bonus_eligible

    def test_restore(self, clock):
        timer = ChecklistTimer.restore(10, 250, had_inactivity_penalty=True, clock=clock)
        assert timer.is_running
        assert timer.elapsed_seconds == 250
        assert timer.had_inactivity_penalty
        clock.advance(5)
        assert timer.display() == "04:15"
