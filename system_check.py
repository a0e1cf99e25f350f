"""
End-to-end check of the decision-support pipeline.

This script exercises:
1. Configuration loading and validation
2. Single-record assessment
3. School analysis with priority areas and program recommendations
4. Bounded comparison of several schools
5. Error handling (malformed records, invalid scopes)

Run with: uv run python system_check.py
"""

import asyncio
import random
from datetime import date
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.memory import InMemoryRecordStore
from core.config import get_config, print_config_summary, validate_config
from core.domain.errors import InvalidScopeError
from core.services.decision_support import DecisionSupportService, create_service

console = Console()

AS_OF = date(2024, 6, 3)

_SCENARIOS: dict[str, dict[str, Any]] = {
    "healthy": {},
    "underweight": {"nutritionalStatusBMI": "b"},
    "severely_underweight": {"nutritionalStatusBMI": "c"},
    "vision": {"visionScreening": "Failed"},
    "lice": {"skinScalp": "b"},
    "not_dewormed": {"deworming": {"firstRound": False, "secondRound": False}},
    "no_shots": {"immunization": "Incomplete"},
    "cardiac": {"lungsHeart": "Irregular heart rate", "riskLevel": "High"},
}


def build_record(record_id: str, grade: str, scenario: str) -> dict[str, Any]:
    """Build a raw exam record for one demo scenario."""
    findings = {
        "nutritionalStatusBMI": "Normal Weight",
        "nutritionalStatusHeightForAge": "Normal Height",
        "visionScreening": "Passed",
        "auditoryScreening": "Passed",
        "skinScalp": "Normal",
        "lungsHeart": "Normal",
        "immunization": "Complete",
        "deworming": {"firstRound": True, "secondRound": True},
        "ironSupplementation": True,
        "riskLevel": "Low",
        "dateOfExamination": "2024-05-20",
        **_SCENARIOS[scenario],
    }
    return {"id": record_id, "grade": grade, "isApproved": True, "findings": findings}


def build_store(seed: int = 7) -> InMemoryRecordStore:
    """Three schools with different finding mixes."""
    rng = random.Random(seed)
    store = InMemoryRecordStore(latency_seconds=0.05)
    weights = {
        "school-north": [60, 10, 2, 10, 10, 4, 3, 1],
        "school-south": [40, 15, 10, 5, 20, 5, 3, 2],
        "school-east": [50, 5, 0, 20, 5, 10, 10, 0],
    }
    for school_id, school_weights in weights.items():
        records = [
            build_record(
                f"{school_id}-{i}",
                f"Grade {rng.randint(1, 6)}",
                rng.choices(list(_SCENARIOS), weights=school_weights)[0],
            )
            for i in range(80)
        ]
        store.add_exam_records(school_id, records)
    return store


async def check_configuration() -> bool:
    """Check configuration loading."""

    console.print(Panel("⚙️ Checking Configuration", style="blue"))

    try:
        validate_config()
        console.print("✅ Configuration loaded successfully", style="green")
        print_config_summary()
        return True

    except Exception as e:
        console.print(f"❌ Configuration check failed: {e}", style="red")
        return False


async def check_single_record() -> bool:
    """Assess one record with a cardiac finding."""

    console.print(Panel("🩺 Checking Single-Record Assessment", style="blue"))

    try:
        service = DecisionSupportService()
        assessment = service.assess_record(build_record("demo-1", "Grade 2", "cardiac"), AS_OF)

        console.print(
            f"Status: {assessment.overall_health_status.value} | Risk: {assessment.risk_level.value}",
            style="red" if assessment.has_severe_alert else "yellow",
        )

        table = Table(title="Alerts")
        table.add_column("Code", style="cyan")
        table.add_column("Severity", style="magenta")
        table.add_column("Description", style="white")
        table.add_column("Immediate", style="red")

        for alert in assessment.alerts:
            table.add_row(
                alert.code,
                alert.severity.value,
                alert.description,
                "yes" if alert.requires_immediate_attention else "",
            )
        console.print(table)

        for rec in service.priority_actions(assessment).priority_recommendations:
            console.print(
                f"  {rec.priority.value}: {rec.description} -> {rec.assigned_to.value} by {rec.target_date}"
            )

        return assessment.has_severe_alert

    except Exception as e:
        console.print(f"❌ Single-record check failed: {e}", style="red")
        return False


async def check_school_analysis(service: DecisionSupportService) -> bool:
    """Analyze one school end to end."""

    console.print(Panel("🏫 Checking School Analysis", style="blue"))

    try:
        report = await service.analyze_school("school-south")

        console.print(
            f"✅ {report.valid_records}/{report.total_records} records aggregated",
            style="green",
        )

        areas = Table(title="Priority Areas")
        areas.add_column("Category", style="cyan")
        areas.add_column("Condition", style="magenta")
        areas.add_column("Prevalence", style="green")
        areas.add_column("Severity", style="yellow")

        for area in report.priority_areas:
            areas.add_row(area.category, area.condition, f"{area.percentage}%", area.severity.value)
        console.print(areas)

        programs = Table(title="Program Recommendations")
        programs.add_column("Program", style="cyan")
        programs.add_column("Priority", style="red")
        programs.add_column("Owner", style="white")
        programs.add_column("Target", style="green")

        for rec in report.recommendations:
            programs.add_row(rec.title, rec.priority.value, rec.assigned_to.value, str(rec.target_date))
        console.print(programs)

        return True

    except Exception as e:
        console.print(f"❌ School analysis check failed: {e}", style="red")
        return False


async def check_school_comparison(service: DecisionSupportService) -> bool:
    """Compare all schools under the configured concurrency limit."""

    console.print(Panel("📊 Checking School Comparison", style="blue"))

    try:
        store = service.store
        assert isinstance(store, InMemoryRecordStore)
        reports = await service.compare_schools(store.school_ids)

        table = Table(title="School Comparison")
        table.add_column("School", style="cyan")
        table.add_column("Records", style="white")
        table.add_column("High/Urgent", style="red")
        table.add_column("Top Priority Area", style="yellow")

        for school_id, report in reports.items():
            escalated = report.risk_analysis["HIGH"].count + report.risk_analysis["URGENT"].count
            top = report.priority_areas[0] if report.priority_areas else None
            table.add_row(
                school_id,
                str(report.valid_records),
                str(escalated),
                f"{top.condition} ({top.percentage}%)" if top else "-",
            )
        console.print(table)

        return len(reports) == len(store.school_ids)

    except Exception as e:
        console.print(f"❌ School comparison check failed: {e}", style="red")
        return False


async def check_error_handling(service: DecisionSupportService) -> bool:
    """Malformed records degrade; invalid scopes are rejected."""

    console.print(Panel("🛡️ Checking Error Handling", style="blue"))

    try:
        records = [build_record("ok-1", "Grade 1", "healthy"), {"id": "bad", "findings": "??"}]
        report = await service.aggregate_findings(records)
        console.print(
            f"Excluded records: {report.excluded_record_ids}",
            style="green" if report.excluded_record_ids == ["bad"] else "red",
        )

        try:
            await service.analyze_school("  ")
        except InvalidScopeError as e:
            console.print(f"✅ Rejected blank school id: {e}", style="green")
        else:
            return False

        return report.excluded_record_ids == ["bad"]

    except Exception as e:
        console.print(f"❌ Error handling check failed: {e}", style="red")
        return False


async def run_all_checks() -> None:
    """Run all system checks."""

    console.print(Panel("🧪 School Health Decision Support - System Checks", style="bold blue"))

    service = create_service(get_config(), store=build_store())

    checks = [
        ("Configuration", check_configuration),
        ("Single Record", check_single_record),
        ("School Analysis", lambda: check_school_analysis(service)),
        ("School Comparison", lambda: check_school_comparison(service)),
        ("Error Handling", lambda: check_error_handling(service)),
    ]

    results = []

    for check_name, check_func in checks:
        console.print(f"\n{'=' * 60}")
        try:
            result = await check_func()
            results.append((check_name, result))
        except KeyboardInterrupt:
            console.print("\n⏹️  Checks interrupted by user", style="yellow")
            break
        except Exception as e:
            console.print(f"❌ {check_name} failed with exception: {e}", style="red")
            results.append((check_name, False))

    console.print(f"\n{'=' * 60}")
    console.print(Panel("📋 Check Results Summary", style="bold"))

    summary_table = Table()
    summary_table.add_column("Check", style="cyan")
    summary_table.add_column("Result", style="white")

    passed = 0
    for check_name, result in results:
        status = "✅ PASS" if result else "❌ FAIL"
        summary_table.add_row(check_name, status)
        if result:
            passed += 1

    console.print(summary_table)
    console.print(
        f"\n{passed}/{len(results)} checks passed",
        style="green" if passed == len(results) else "yellow",
    )


if __name__ == "__main__":
    asyncio.run(run_all_checks())
