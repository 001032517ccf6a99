# refurb/performance.py
from typing import Iterable

from .attribution import attribute_technician
from .models import SERVICE_STATUSES
from .settings import KNOWN_TECHNICIANS


def completion_rate(assigned_defects: int, completed: int) -> float:
    """Completed share as a percentage in [0, 100]."""
    denominator = assigned_defects + completed
    if denominator <= 0:
        return 0.0
    return completed / denominator * 100


def workload_score(assigned_defects: int) -> float:
    return float(max(0, 100 - 10 * assigned_defects))


def efficiency_score(rate: float, workload: float) -> float:
    return 0.4 * rate + 0.6 * workload


def technician_performance(defects: Iterable, service_requests: Iterable, technicians: Iterable[str] | None = None) -> list[dict]:
    technicians = list(KNOWN_TECHNICIANS if technicians is None else technicians)
    defects = list(defects)
    service_requests = list(service_requests)

    rows = []
    for name in technicians:
        mine = [d for d in defects if attribute_technician(d, technicians) == name]
        device_ids = {d.device_id for d in mine}
        buckets = {s: 0 for s in SERVICE_STATUSES}
        for sr in service_requests:
            if sr.device_id in device_ids and sr.status in buckets:
                buckets[sr.status] += 1

        assigned = len(mine)
        rate = completion_rate(assigned, buckets["completed"])
        workload = workload_score(assigned)
        rows.append({
            "technician": name,
            "assigned_defects": assigned,
            "devices": len(device_ids),
            "service_requests": buckets,
            "completion_rate": round(rate, 2),
            "workload_score": workload,
            "efficiency_score": round(efficiency_score(rate, workload), 2),
        })

    # sorted() is stable, ties keep configured order
    return sorted(rows, key=lambda r: r["efficiency_score"], reverse=True)
