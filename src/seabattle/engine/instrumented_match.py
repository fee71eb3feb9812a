"""Match subclass that reports spans, metrics and logs for a whole game."""

from __future__ import annotations

import time

from seabattle.telemetry import get_logger, get_tracer, record_game_metric

from .match import Match, TurnSummary


class InstrumentedMatch(Match):
    """Wraps Match with tracing, metrics, and logging."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._logger = get_logger("seabattle.engine")
        self._tracer = get_tracer("seabattle.engine")
        self._match_span_cm = None
        self._match_span = None
        self._match_start_time: float | None = None
        self._match_id_counter = 0
        self._shots_fired = 0

    def start(self, place_fleets: bool = True) -> None:
        self._start_match_span()
        with self._tracer.start_as_current_span("seabattle.engine.start") as span:
            self._logger.info("Match setup started")
            super().start(place_fleets)
            for index, player in enumerate(self.players, start=1):
                span.set_attribute(f"player{index}_ships", len(player.board.fleet))
            record_game_metric(
                "seabattle_match_setup_total",
                1,
                {"mode": self.mode.value},
            )
            self._logger.info("Match setup finished")

    def play_turn(self) -> TurnSummary:
        with self._tracer.start_as_current_span("seabattle.engine.turn") as span:
            span.set_attribute("match.id", self._match_id_counter)
            span.set_attribute("player", self.current_player.name)

            try:
                summary = super().play_turn()
            except (RuntimeError, ValueError) as exc:
                record_game_metric(
                    "seabattle_invalid_turns_total",
                    1,
                    {"player": self.current_player.name},
                )
                span.record_exception(exc)
                span.set_attribute("error", True)
                self._logger.error("Turn by %s failed: %s", self.current_player.name, exc)
                if self._match_span is not None:
                    self._match_span.record_exception(exc)
                    self._match_span.set_attribute("error", True)
                self._close_match_span()
                raise

            hits = sum(1 for _, hit in summary.shots if hit)
            span.set_attribute("shots", len(summary.shots))
            span.set_attribute("hits", hits)
            self._shots_fired += len(summary.shots)

            record_game_metric("seabattle_turns_total", 1, {"player": summary.player})
            record_game_metric("seabattle_shots_total", len(summary.shots), {"player": summary.player})
            for result, count in (("hit", hits), ("miss", len(summary.shots) - hits)):
                if count:
                    record_game_metric(
                        "seabattle_shots_by_result_total",
                        count,
                        {"player": summary.player, "result": result},
                    )

            self._logger.info(
                "turn player=%s shots=%d hits=%d",
                summary.player,
                len(summary.shots),
                hits,
            )

            if summary.game_over and self.winner is not None:
                span.set_attribute("winner", self.winner.name)
                self._finish_match()

            return summary

    def _start_match_span(self) -> None:
        self._close_match_span()
        self._match_start_time = time.perf_counter()
        self._match_id_counter += 1
        self._shots_fired = 0
        self._match_span_cm = self._tracer.start_as_current_span("seabattle.engine.match")
        self._match_span = self._match_span_cm.__enter__()
        self._match_span.set_attribute("match.id", self._match_id_counter)

    def _finish_match(self) -> None:
        duration = (time.perf_counter() - self._match_start_time) if self._match_start_time else 0.0
        winner = self.winner.name if self.winner else "unknown"

        record_game_metric("seabattle_match_completed_total", 1, {"winner": winner})
        record_game_metric("seabattle_match_duration_seconds", duration, {"winner": winner})

        with self._tracer.start_as_current_span("seabattle.engine.match_complete") as span:
            span.set_attribute("match.id", self._match_id_counter)
            span.set_attribute("winner", winner)
            span.set_attribute("turns", self.turn_number)
            span.set_attribute("shots", self._shots_fired)

        if self._match_span is not None:
            self._match_span.set_attribute("winner", winner)
            self._match_span.set_attribute("turns", self.turn_number)
            self._match_span.set_attribute("duration_ms", duration * 1000)

        self._logger.info(
            "Match finished. Winner=%s turns=%d shots=%d duration_s=%.3f",
            winner,
            self.turn_number,
            self._shots_fired,
            duration,
        )
        self._close_match_span()

    def _close_match_span(self) -> None:
        if self._match_span_cm is not None:
            self._match_span_cm.__exit__(None, None, None)
            self._match_span_cm = None
            self._match_span = None
