from datetime import date

import pytest
from sqlalchemy.orm.exc import StaleDataError

from scorecard import models
from scorecard.errors import Conflict, InvalidInput, NotFound
from scorecard.services import distribution, ledger

TODAY = date(2025, 6, 15)


@pytest.fixture
def assignment(db, make_salesperson, make_objective):
    sp = make_salesperson()
    obj = make_objective(company_target=1000)
    return distribution.assign(db, obj.id, sp.id, 100, today=TODAY)


def test_recording_a_month_updates_ytd_and_status(db, assignment):
    a = ledger.record_month(db, assignment.id, "01", 40, today=TODAY)
    assert a.monthly_progress == {"01": 40.0}
    assert a.current_value == 40.0
    assert a.status == "in_progress"


def test_resubmitting_a_month_overwrites(db, assignment):
    ledger.record_month(db, assignment.id, "03", 30, today=TODAY)
    a = ledger.record_month(db, assignment.id, "03", 30, today=TODAY)
    assert a.current_value == 30.0
    a = ledger.record_month(db, assignment.id, "03", 10, today=TODAY)
    assert a.monthly_progress == {"03": 10.0}
    assert a.current_value == 10.0


def test_ytd_is_sum_after_any_sequence(db, assignment):
    for month, value in [("01", 10), ("05", 20.5), ("01", 12), ("12", 0), ("05", 7)]:
        a = ledger.record_month(db, assignment.id, month, value, today=TODAY)
        assert a.current_value == pytest.approx(sum(a.monthly_progress.values()))
    assert a.monthly_progress == {"01": 12.0, "05": 7.0, "12": 0.0}
    assert a.current_value == pytest.approx(19.0)


def test_numeric_strings_are_accepted(db, assignment):
    a = ledger.record_month(db, assignment.id, "02", " 12.5 ", today=TODAY)
    assert a.current_value == 12.5


@pytest.mark.parametrize("month", ["1", "13", "00", "1a", "", "01\n", 1, None])
def test_malformed_month_is_rejected(db, assignment, month):
    with pytest.raises(InvalidInput):
        ledger.record_month(db, assignment.id, month, 10)


@pytest.mark.parametrize("value", ["abc", -1, float("nan"), float("inf"), None, True])
def test_bad_value_is_rejected(db, assignment, value):
    with pytest.raises(InvalidInput):
        ledger.record_month(db, assignment.id, "01", value)
    db.refresh(assignment)
    assert assignment.monthly_progress == {}


def test_record_monthly_progress_returns_the_assignment(db, assignment):
    a = ledger.record_monthly_progress(db, assignment.id, "06", 100, today=TODAY)
    assert a.id == assignment.id
    assert a.status == "completed"


def test_unknown_assignment(db):
    with pytest.raises(NotFound):
        ledger.record_month(db, "missing", "01", 10)


def test_assignment_must_belong_to_salesperson(db, assignment, make_salesperson):
    other = make_salesperson()
    with pytest.raises(NotFound):
        ledger.record_month(db, assignment.id, "01", 10, salesperson_id=other.id)
    a = ledger.record_month(db, assignment.id, "01", 10, salesperson_id=assignment.salesperson_id, today=TODAY)
    assert a.current_value == 10.0


def test_correction_below_target_reopens_completed(db, assignment):
    a = ledger.record_month(db, assignment.id, "01", 100, today=TODAY)
    assert a.status == "completed"
    a = ledger.record_month(db, assignment.id, "01", 80, today=TODAY)
    assert a.current_value == 80.0
    assert a.status == "in_progress"


def test_below_minimum_after_end_date(db, make_salesperson, make_objective):
    sp = make_salesperson()
    obj = make_objective(company_target=1000, minimum_acceptable=700, end_date=date(2025, 3, 31))
    a = distribution.assign(db, obj.id, sp.id, 500)
    ledger.record_month(db, a.id, "01", 200, today=date(2025, 6, 1))
    a = ledger.record_month(db, a.id, "02", 150, today=date(2025, 6, 1))
    assert a.current_value == 350.0
    assert a.status == "not_completed"


def test_below_minimum_before_end_date(db, make_salesperson, make_objective):
    sp = make_salesperson()
    obj = make_objective(company_target=1000, minimum_acceptable=700, end_date=date(2025, 3, 31))
    a = distribution.assign(db, obj.id, sp.id, 500)
    a = ledger.record_month(db, a.id, "01", 350, today=date(2025, 2, 1))
    assert a.status == "in_progress"


def test_monthly_progress_round_trips(db, assignment):
    ledger.record_month(db, assignment.id, "11", 1.25, today=TODAY)
    ledger.record_month(db, assignment.id, "02", 3, today=TODAY)
    db.expire_all()
    stored = db.get(models.Assignment, assignment.id)
    assert stored.monthly_progress == {"11": 1.25, "02": 3.0}
    assert stored.version >= 3


def test_stale_write_is_retried(db, assignment, monkeypatch):
    real_commit = db.commit
    calls = {"n": 0}

    def flaky_commit():
        calls["n"] += 1
        if calls["n"] == 1:
            raise StaleDataError("row changed underneath")
        real_commit()

    monkeypatch.setattr(db, "commit", flaky_commit)
    a = ledger.record_month(db, assignment.id, "04", 25, today=TODAY)
    assert calls["n"] == 2
    assert a.current_value == 25.0


def test_persistent_contention_surfaces_as_conflict(db, assignment, monkeypatch):
    def always_stale():
        raise StaleDataError("row changed underneath")

    monkeypatch.setattr(db, "commit", always_stale)
    with pytest.raises(Conflict):
        ledger.record_month(db, assignment.id, "04", 25, today=TODAY)
