"""
Built-in sample data used when a file source does not exist.
"""

from datetime import datetime
from typing import Any, Callable


def sample_budget_data() -> list[dict[str, Any]]:
    now = datetime.now()
    return [
        {
            "SVP ID": "SVP001",
            "SVP Name": "Maria Rodriguez",
            "Department": "Technology",
            "Allocated Budget": 5000000,
            "Spent Amount": 3500000,
            "Remaining Budget": 1500000,
            "Active Projects": 8,
            "Last Updated": now,
        },
        {
            "SVP ID": "SVP002",
            "SVP Name": "James Chen",
            "Department": "Operations",
            "Allocated Budget": 3000000,
            "Spent Amount": 2100000,
            "Remaining Budget": 900000,
            "Active Projects": 5,
            "Last Updated": now,
        },
        {
            "SVP ID": "SVP003",
            "SVP Name": "Sarah Johnson",
            "Department": "Risk Management",
            "Allocated Budget": 2500000,
            "Spent Amount": 1800000,
            "Remaining Budget": 700000,
            "Active Projects": 4,
            "Last Updated": now,
        },
    ]


def sample_project_data() -> list[dict[str, Any]]:
    return [
        {
            "Project ID": "PROJ001",
            "Project Name": "Capital Requirements Update",
            "Status": "In Progress",
            "Progress %": 75,
            "Budget Allocated": 200000,
            "Budget Spent": 150000,
            "Start Date": datetime(2024, 1, 15),
            "End Date": datetime(2024, 6, 30),
            "SVP Owner": "Maria Rodriguez",
            "Risk Level": "Medium",
        },
        {
            "Project ID": "PROJ002",
            "Project Name": "KYC Enhancement",
            "Status": "At Risk",
            "Progress %": 45,
            "Budget Allocated": 180000,
            "Budget Spent": 120000,
            "Start Date": datetime(2024, 2, 1),
            "End Date": datetime(2024, 7, 15),
            "SVP Owner": "Carlos Santos",
            "Risk Level": "High",
        },
        {
            "Project ID": "PROJ003",
            "Project Name": "AML System Upgrade",
            "Status": "Active",
            "Progress %": 90,
            "Budget Allocated": 150000,
            "Budget Spent": 135000,
            "Start Date": datetime(2023, 10, 1),
            "End Date": datetime(2024, 3, 31),
            "SVP Owner": "Ana Gutierrez",
            "Risk Level": "Low",
        },
    ]


def sample_compliance_data() -> list[dict[str, Any]]:
    return [
        {
            "Regulation ID": "REG001",
            "Regulation Name": "Capital Requirements",
            "Compliance Status": "Compliant",
            "Last Audit Date": datetime(2024, 1, 15),
            "Next Audit Date": datetime(2024, 7, 15),
            "Risk Score": 85,
            "Responsible Department": "Risk Management",
            "Findings Count": 0,
        },
        {
            "Regulation ID": "REG002",
            "Regulation Name": "AML/CFT Regulations",
            "Compliance Status": "Review Required",
            "Last Audit Date": datetime(2024, 2, 1),
            "Next Audit Date": datetime(2024, 8, 1),
            "Risk Score": 92,
            "Responsible Department": "Compliance",
            "Findings Count": 2,
        },
    ]


DEFAULT_FIXTURES: dict[str, Callable[[], list[dict[str, Any]]]] = {
    "budget": sample_budget_data,
    "project": sample_project_data,
    "compliance": sample_compliance_data,
}


class FixtureGenerator:
    """
    Picks sample records by pipeline name.

    The first registered key contained in the pipeline name wins; a name
    matching no key yields an empty list.
    """

    def __init__(self, fixtures: dict[str, Callable[[], list[dict[str, Any]]]] | None = None):
        self.fixtures = dict(DEFAULT_FIXTURES if fixtures is None else fixtures)

    def for_pipeline(self, pipeline_name: str) -> list[dict[str, Any]]:
        for key, factory in self.fixtures.items():
            if key in pipeline_name:
                return factory()
        return []
