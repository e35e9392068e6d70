import logging
from datetime import date

from flow_metrics.analytics.metrics.cfd import build_cfd, cumulative_counts
from flow_metrics.core.config import DEFAULT_WORKFLOW_STATES, EngineSettings
from flow_metrics.core.models import Ticket

STATES = DEFAULT_WORKFLOW_STATES
DAY = 86400
BASE = 1679356800  # 2023-03-21 00:00 UTC


def _ticket(ticket_id, **stamps):
    return Ticket(id=ticket_id, state_timestamps={s: stamps.get(s) for s in STATES})


def _sample_tickets():
    return [
        # skips analysis_done
        _ticket("A", analysis_active=BASE - 2 * DAY, in_progress=BASE - DAY, delivered=BASE),
        _ticket("B", analysis_active=BASE - DAY, delivered=BASE + 2 * DAY),
        # never delivered
        _ticket("C", analysis_active=BASE),
        _ticket("D", analysis_active=BASE, in_progress=BASE + DAY, delivered=BASE + 2 * DAY),
    ]


def test_empty_input_returns_empty():
    assert build_cfd([], STATES) == []


def test_no_delivered_ticket_returns_empty():
    assert build_cfd([_ticket("C", analysis_active=BASE)], STATES) == []


def test_daily_occupancy():
    records = build_cfd(_sample_tickets(), STATES)
    assert [r.date for r in records] == [date(2023, 3, 21), date(2023, 3, 22), date(2023, 3, 23)]

    first, second, third = (r.counts for r in records)
    assert first["delivered"] == 1 and first["analysis_active"] == 3
    assert second["delivered"] == 1 and second["analysis_active"] == 2 and second["in_progress"] == 1
    assert third["delivered"] == 3 and third["analysis_active"] == 1 and third["in_progress"] == 0
    assert all(r.counts["analysis_done"] == 0 for r in records)


def test_conservation_with_skipped_states():
    tickets = _sample_tickets()
    for offset, record in enumerate(build_cfd(tickets, STATES)):
        end_of_day = BASE + (offset + 1) * DAY
        started = [t for t in tickets if min(v for v in t.state_timestamps.values() if v is not None) < end_of_day]
        assert record.total == len(started)


def test_delivered_band_is_monotonic():
    records = build_cfd(_sample_tickets(), STATES)
    delivered = [r.counts["delivered"] for r in records]
    assert delivered == sorted(delivered)


def test_undelivered_ticket_stays_in_last_state():
    tickets = [
        _ticket("E", analysis_active=BASE - DAY, delivered=BASE),
        _ticket("A", analysis_active=BASE, delivered=BASE + 5 * DAY),
        _ticket("S", analysis_active=BASE, dev_complete=BASE + DAY),
    ]
    records = build_cfd(tickets, STATES)
    assert records[0].date == date(2023, 3, 21)
    assert [r.counts["dev_complete"] for r in records] == [0, 1, 1, 1, 1, 1]


def test_out_of_order_ticket_skipped_with_warning(caplog):
    tickets = [
        _ticket("A", analysis_active=BASE - DAY, delivered=BASE + DAY),
        _ticket("F", analysis_active=BASE, in_progress=BASE - DAY, delivered=BASE),
    ]
    with caplog.at_level(logging.WARNING):
        records = build_cfd(tickets, STATES)
    assert "F" in caplog.text
    assert all(r.total == 1 for r in records)

    caplog.clear()
    with caplog.at_level(logging.WARNING):
        kept = build_cfd(tickets, STATES, settings=EngineSettings(out_of_order_policy="keep"))
    assert kept[-1].counts["delivered"] == 2
    assert "Keeping F" in caplog.text


def test_days_follow_local_timezone():
    tickets = [_ticket("A", analysis_active=BASE - DAY, delivered=BASE)]
    records = build_cfd(tickets, STATES, settings=EngineSettings(timezone="America/Santiago"))
    assert [r.date for r in records] == [date(2023, 3, 20)]


def test_days_exist_when_midnight_is_skipped_by_dst():
    # America/Santiago jumps from 2023-09-03 00:00 straight to 01:00.
    delivered = 1693753200  # 2023-09-03 12:00 local
    tickets = [_ticket("A", analysis_active=delivered - 3 * DAY, delivered=delivered)]
    records = build_cfd(tickets, STATES, settings=EngineSettings(timezone="America/Santiago"))
    assert [r.date for r in records] == [date(2023, 9, 3)]
    assert records[0].counts["delivered"] == 1


def test_build_is_idempotent():
    tickets = _sample_tickets()
    assert build_cfd(tickets, STATES) == build_cfd(tickets, STATES)


def test_cumulative_counts_walk_from_bottom():
    record = build_cfd(_sample_tickets(), STATES)[1]
    stack = tuple(reversed(STATES))
    assert cumulative_counts(record, stack) == [1, 1, 1, 2, 2, 4]
