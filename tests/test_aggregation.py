from datetime import date

import pytest

from scorecard import schemas
from scorecard.errors import NotFound
from scorecard.services import aggregation, catalog, distribution, ledger

TODAY = date(2025, 6, 15)


def item(current, target, company_target=None, weight=None, kind="currency"):
    return {
        "current_value": current,
        "individual_target": target,
        "objective": {"company_target": company_target, "weight": weight, "kind": kind},
    }


def test_weighted_progress_of_nothing_is_zero():
    assert aggregation.weighted_numeric_progress([]) == 0.0


def test_weighted_progress_uses_weights():
    items = [item(100, 100, weight=1), item(0, 100, weight=3)]
    assert aggregation.weighted_numeric_progress(items) == pytest.approx(0.25)


def test_over_achievement_is_capped_per_objective():
    items = [item(500, 100, weight=1), item(0, 100, weight=1)]
    assert aggregation.weighted_numeric_progress(items) == pytest.approx(0.5)


def test_missing_weight_counts_as_one():
    items = [item(50, 100), item(100, 100, weight=None)]
    assert aggregation.weighted_numeric_progress(items) == pytest.approx(0.75)


def test_company_target_takes_precedence_over_individual():
    assert aggregation.weighted_numeric_progress([item(500, 500, company_target=1000)]) == pytest.approx(0.5)
    assert aggregation.weighted_numeric_progress([item(250, 500, company_target=0)]) == pytest.approx(0.5)


def test_tiny_targets_are_floored_at_one():
    assert aggregation.weighted_numeric_progress([item(0.25, 0.5)]) == pytest.approx(0.25)


def test_zero_weight_counts_as_one():
    assert aggregation.weighted_numeric_progress([item(100, 100, weight=0)]) == pytest.approx(1.0)
    items = [item(100, 100, weight=0), item(0, 100, weight=1)]
    assert aggregation.weighted_numeric_progress(items) == pytest.approx(0.5)


def test_suggestions_and_broken_joins_are_skipped():
    suggestion = schemas.SuggestedObjective(
        objective=schemas.ObjectiveOut(
            id="g", name="Global", kind="currency", company_target=100, start_date=date(2025, 1, 1),
            end_date=date(2025, 12, 31), is_global=True, status="pending",
        ),
        suggested_target=50,
    )
    broken = {"id": "x", "current_value": 10, "individual_target": 10, "objective": None}
    items = [suggestion, broken, {"kind": "suggested"}, item(30, 100)]
    assert aggregation.weighted_numeric_progress(items) == pytest.approx(0.3)


def test_overall_progress_pools_individual_targets():
    items = [item(50, 100), item(250, 200)]
    assert aggregation.overall_quantitative_progress(items) == pytest.approx(1.0)
    assert aggregation.overall_quantitative_progress([item(50, 100), item(0, 100)]) == pytest.approx(0.25)
    assert aggregation.overall_quantitative_progress([]) == 0.0
    # company targets would be counted once per holder, so only individual targets pool
    assert aggregation.overall_quantitative_progress([item(50, 100, company_target=1000)]) == pytest.approx(0.5)


def test_qualitative_completion_rate_ignores_weight():
    objs = [
        {"status": "completed", "weight": 90},
        {"status": "in_progress", "weight": 5},
        {"status": "pending", "weight": None},
        {"status": "not_completed", "weight": 5},
    ]
    assert aggregation.qualitative_completion_rate(objs) == pytest.approx(0.25)
    assert aggregation.qualitative_completion_rate([]) == 0.0


def test_qualitative_status_counts():
    counts = aggregation.qualitative_status_counts(
        [{"status": "completed"}, {"status": "completed"}, {"status": "pending"}]
    )
    assert counts == {"pending": 1, "in_progress": 0, "completed": 2, "not_completed": 0}


def test_total_sales_counts_only_currency():
    items = [item(100, 0), item(7, 0, kind="count"), item(50, 0, kind="currency")]
    assert aggregation.total_sales(items) == 150.0


@pytest.fixture
def team(db, make_salesperson, make_objective):
    ana, ben = make_salesperson("Ana"), make_salesperson("Ben")
    make_salesperson("Idle", active=False)
    revenue = make_objective(name="Revenue", company_target=1000, weight=1)
    contracts = make_objective(name="Contracts", kind="count", company_target=20, weight=3)

    a1 = distribution.assign(db, revenue.id, ana.id, 600)
    a2 = distribution.assign(db, revenue.id, ben.id, 300)
    a3 = distribution.assign(db, contracts.id, ana.id, 10)
    ledger.record_month(db, a1.id, "01", 300, today=TODAY)
    ledger.record_month(db, a1.id, "02", 200, today=TODAY)
    ledger.record_month(db, a2.id, "02", 100, today=TODAY)
    ledger.record_month(db, a3.id, "01", 20, today=TODAY)
    return {"ana": ana, "ben": ben, "revenue": revenue, "contracts": contracts}


def test_weighted_progress_for_salesperson(db, team):
    # revenue 500/1000 weight 1, contracts 20/20 (capped) weight 3
    assert aggregation.weighted_progress(db, team["ana"].id) == pytest.approx((0.5 + 3) / 4)
    with pytest.raises(NotFound):
        aggregation.weighted_progress(db, "ghost")


def test_qualitative_rate_for_salesperson_includes_globals_once(db, team):
    ana = team["ana"]
    catalog.create_qualitative(db, {"name": "Training", "status": "completed", "salesperson_ids": [ana.id]})
    catalog.create_qualitative(db, {"name": "Global", "is_global": True, "salesperson_ids": [ana.id]})
    catalog.create_qualitative(db, {"name": "Not Ana's", "status": "completed", "salesperson_ids": [team["ben"].id]})
    assert aggregation.qualitative_completion_rate_for(db, ana.id) == pytest.approx(0.5)


def test_company_totals_and_allocations(db, team):
    totals = aggregation.company_totals(db)
    assert totals["total_sales"] == 600.0
    by_id = {a["objective_id"]: a for a in totals["allocations"]}
    revenue = by_id[team["revenue"].id]
    assert revenue["sum_individual_targets"] == 900.0
    assert revenue["difference"] == 100.0
    assert revenue["assigned_count"] == 2
    assert by_id[team["contracts"].id]["difference"] == 10.0


def test_top_performers_and_trend(db, team):
    top = aggregation.top_performers(db)
    assert [r["name"] for r in top] == ["Ana", "Ben"]
    assert top[0]["sales"] == 500.0
    assert top[0]["percentage"] == pytest.approx(500 / 600)
    assert aggregation.monthly_sales_trend(db) == [
        {"month": "01", "amount": 300.0},
        {"month": "02", "amount": 300.0},
    ]


def test_dashboard(db, team):
    catalog.create_qualitative(db, {"name": "Q1", "status": "completed"})
    catalog.create_qualitative(db, {"name": "Q2"})
    data = aggregation.dashboard(db)
    assert data["total_sales"] == 600.0
    assert data["active_salespersons"] == 2
    assert data["inactive_salespersons"] == 1
    assert data["qualitative_progress"] == pytest.approx(0.5)
    assert data["qualitative_objective_stats"]["completed"] == 1
    # (500 + 100 + 20) / (600 + 300 + 10)
    assert data["quantitative_progress"] == pytest.approx(620 / 910)


def test_salesperson_scorecard(db, team, make_objective):
    make_objective(name="Global push", company_target=400, is_global=True)
    card = aggregation.salesperson_scorecard(db, team["ben"].id, today=TODAY)
    assert [v.kind for v in card["objectives"]] == ["assigned", "suggested"]
    assert card["total_sales"] == 100.0
    # the suggestion is not counted: 100 / 1000
    assert card["quantitative_progress"] == pytest.approx(0.1)
    assert card["qualitative_progress"] == 0.0
