from types import SimpleNamespace

import pytest

from refurb.performance import completion_rate, efficiency_score, technician_performance, workload_score


def defect(device_id, technician=None, description=""):
    return SimpleNamespace(device_id=device_id, technician=technician, description=description)


def request(device_id, status):
    return SimpleNamespace(device_id=device_id, status=status)


def test_scores():
    assert completion_rate(0, 0) == 0
    assert completion_rate(3, 1) == 25
    assert workload_score(3) == 70
    assert workload_score(15) == 0
    assert efficiency_score(50, 100) == pytest.approx(80)
    assert efficiency_score(100, 100) == pytest.approx(100)
    assert efficiency_score(0, 0) == 0


def test_rates_stay_in_range():
    for assigned in range(0, 20):
        for completed in range(0, 5):
            assert 0 <= completion_rate(assigned, completed) <= 100
            assert 0 <= workload_score(assigned) <= 100
            assert 0 <= efficiency_score(completion_rate(assigned, completed), workload_score(assigned)) <= 100


@pytest.mark.parametrize("rate", [0, 25, 50, 100])
@pytest.mark.parametrize("assigned", [0, 1, 5, 10, 25])
def test_efficiency_bounded_by_rate_and_workload(rate, assigned):
    assert 0 <= efficiency_score(rate, workload_score(assigned)) <= 100


def test_ranking_and_buckets():
    defects = [
        defect("d1", "Hasan"),
        defect("d1", "Hasan"),
        defect("d2", description="Teknisyen: Mehmet"),
        defect("d3", description="Teknisyen: Nobody"),
    ]
    requests = [request("d1", "completed"), request("d2", "sent"), request("d2", "in_progress")]

    rows = technician_performance(defects, requests, ["Hasan", "Mehmet", "Emre"])
    assert [r["technician"] for r in rows] == ["Hasan", "Emre", "Mehmet"]

    hasan, emre, mehmet = rows
    assert hasan["assigned_defects"] == 2
    assert hasan["devices"] == 1
    assert hasan["service_requests"] == {"sent": 0, "in_progress": 0, "completed": 1}
    assert mehmet["service_requests"] == {"sent": 1, "in_progress": 1, "completed": 0}
    assert emre["efficiency_score"] == 60


def test_ties_keep_configured_order():
    rows = technician_performance([], [], ["Emre", "Hasan", "Mehmet"])
    assert [r["technician"] for r in rows] == ["Emre", "Hasan", "Mehmet"]
