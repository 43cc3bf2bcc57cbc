"""
Demo data generator.

Fills a store with a plausible month of portal activity so the dashboard
has something to show: agents across business domains, requests,
telemetry, task outcomes, collaboration samples, risk assessments and
adoption funnel events.
"""

import random
from datetime import date, datetime, time, timedelta
from typing import Optional

from portal_metrics.engine.baselines import default_baseline_entries
from portal_metrics.models.baselines import LaborCost, TaskBaseline
from portal_metrics.models.enums import RequestStatus, TaskStatus
from portal_metrics.storage.base import StorageBackend
from portal_metrics.utils.logging import get_logger

logger = get_logger(__name__)

DEMO_AGENTS = [
    ("Invoice Reviewer", "document", "finance"),
    ("Expense Auditor", "analysis", "finance"),
    ("Onboarding Assistant", "assistant", "hr"),
    ("Payroll Checker", "analysis", "hr"),
    ("Ticket Router", "assistant", "support"),
    ("Contract Summarizer", "document", "legal"),
]

FUNNEL_STAGES = ["visited", "tried", "adopted", "retained"]

DEMO_TASK_BASELINES = [
    TaskBaseline(task_code="INV-REVIEW", domain="finance", before_time_min=18, before_cost=9000),
    TaskBaseline(task_code="ONBOARD", domain="hr", before_time_min=25),
    TaskBaseline(task_code="TICKET-TRIAGE", domain="support", before_time_min=6, before_cost=2500),
]

DEMO_LABOR_COSTS = [
    LaborCost(role="analyst", hourly_cost=45000),
    LaborCost(role="accountant", hourly_cost=52000, business_type="finance"),
    LaborCost(role="hr_specialist", hourly_cost=41000, business_type="hr"),
]


def _random_moment(rng: random.Random, day: date) -> datetime:
    return datetime.combine(day, time(hour=rng.randint(8, 19), minute=rng.randint(0, 59)))


def seed_demo_data(
    storage: StorageBackend,
    days: int = 30,
    users: int = 40,
    seed: int = 42,
    today: Optional[date] = None,
) -> dict[str, int]:
    """
    Seed demo activity for the ``days`` days before ``today`` (and the window before that).

    Args:
        storage: Target store
        days: Number of days of activity
        users: Number of portal users
        seed: Random seed for reproducibility
        today: Reference date, activity ends the day before (default: today)

    Returns:
        Row counts per kind of sample written
    """
    rng = random.Random(seed)
    last_day = (today or date.today()) - timedelta(days=1)
    counts = {
        "agents": 0,
        "requests": 0,
        "agent_metrics": 0,
        "agent_tasks": 0,
        "users": 0,
        "collaboration": 0,
        "risk_items": 0,
        "funnel_events": 0,
    }

    storage.seed_default_baselines(default_baseline_entries())
    for task_baseline in DEMO_TASK_BASELINES:
        storage.upsert_task_baseline(task_baseline)
    for labor_cost in DEMO_LABOR_COSTS:
        storage.upsert_labor_cost(labor_cost)

    agents = []
    for name, agent_type, business_type in DEMO_AGENTS:
        agent_id = storage.write_agent(name, agent_type, business_type)
        agents.append((agent_id, agent_type, business_type))
        counts["agents"] += 1

    user_ids = [f"user-{i:03d}" for i in range(users)]
    domains = sorted({business_type for _, _, business_type in DEMO_AGENTS})
    for user_id in user_ids:
        storage.write_user(user_id)
        counts["users"] += 1
        if rng.random() < 0.75:
            storage.write_user_business_domain(user_id, rng.choice(domains))

    # Two windows of history so growth has a previous period to compare with
    for offset in range(days * 2):
        day = last_day - timedelta(days=offset)
        volume_factor = 1.2 if offset < days else 1.0

        for agent_id, agent_type, business_type in agents:
            for _ in range(int(rng.randint(2, 6) * volume_factor)):
                status = rng.choices(
                    [RequestStatus.COMPLETED, RequestStatus.PENDING, RequestStatus.IN_PROGRESS, RequestStatus.REJECTED],
                    weights=[70, 15, 10, 5],
                )[0]
                storage.write_request(
                    _random_moment(rng, day),
                    status=status.value,
                    agent_id=agent_id,
                    business_type=business_type,
                    title=f"{agent_type} request",
                    created_by=rng.choice(user_ids),
                )
                counts["requests"] += 1

            assisted = rng.randint(10, 40)
            recommendations = rng.randint(10, 40)
            storage.write_agent_metric(
                agent_id,
                _random_moment(rng, day),
                requests_processed=rng.randint(20, 120),
                avg_latency=rng.uniform(400, 2200),
                # Some collectors report a fraction, others a percentage
                error_rate=rng.uniform(0.005, 0.08) if rng.random() < 0.5 else rng.uniform(1.5, 6.0),
                queue_time=rng.uniform(50, 600),
                ai_assisted_decisions=assisted,
                ai_assisted_decisions_validated=rng.randint(int(assisted * 0.6), assisted),
                ai_recommendations=recommendations,
                decisions_overridden=rng.randint(0, int(recommendations * 0.3)),
                cognitive_load_before_score=rng.uniform(6.0, 9.0),
                cognitive_load_after_score=rng.uniform(3.0, 6.0),
                handoff_time_seconds=rng.uniform(20, 180),
                team_satisfaction_score=rng.uniform(3.0, 4.8),
                innovation_count=rng.randint(0, 3),
            )
            counts["agent_metrics"] += 1

            for _ in range(rng.randint(3, 8)):
                status = rng.choices(
                    [TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.RUNNING],
                    weights=[85, 8, 7],
                )[0]
                storage.write_agent_task(agent_id, status.value, _random_moment(rng, day))
                counts["agent_tasks"] += 1

        if rng.random() < 0.3:
            agent_id, agent_type, business_type = rng.choice(agents)
            storage.write_risk_item(
                _random_moment(rng, day),
                scores=tuple(rng.randint(1, 5) for _ in range(4)),
                business_type=business_type,
                agent_type=agent_type,
                agent_id=agent_id,
                use_case=f"{business_type} automation",
                audit_required=rng.random() < 0.6,
                audit_completed=rng.random() < 0.4,
                human_reviewed=rng.random() < 0.7,
            )
            counts["risk_items"] += 1

    # Weekly collaboration surveys for the finance domain only; the other
    # domains fall back to telemetry estimates.
    for week in range(days // 7):
        period_end = last_day - timedelta(days=7 * week)
        storage.write_collaboration_metric(
            period_end - timedelta(days=6),
            period_end,
            business_type="finance",
            decision_accuracy_pct=rng.uniform(80, 96),
            override_rate_pct=rng.uniform(4, 15),
            cognitive_load_reduction_pct=rng.uniform(20, 45),
            handoff_time_seconds=rng.uniform(30, 90),
            team_satisfaction_score=rng.uniform(3.5, 4.7),
            innovation_count=rng.randint(1, 6),
        )
        counts["collaboration"] += 1

    for user_id in user_ids:
        depth = rng.randint(1, len(FUNNEL_STAGES))
        business_type = rng.choice(domains)
        for stage in FUNNEL_STAGES[:depth]:
            day = last_day - timedelta(days=rng.randint(0, days - 1))
            storage.write_funnel_event(user_id, stage, _random_moment(rng, day), business_type=business_type)
            counts["funnel_events"] += 1

    logger.info("demo_data_seeded", days=days, **counts)
    return counts
