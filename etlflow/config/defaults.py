"""
Default pipeline definitions created when no configuration file exists.

Derived fields are computed by parameterized formulas, so the meaning of
"utilization" or "health" lives here rather than in the engine.
"""

import os

from etlflow.core.models import PipelineDefinition

DEFAULT_DATABASE_URL = "postgresql://localhost:5432/dashboard"


def _database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def budget_etl() -> PipelineDefinition:
    return PipelineDefinition.model_validate({
        "name": "budget_etl",
        "description": "SVP budget allocation and spend",
        "source": {
            "type": "excel",
            "location": "./data/budget/Q4_Budget_2024.xlsx",
            "mapping": {
                "svp_id": {"sourceField": "SVP ID", "dataType": "string", "required": True},
                "svp_name": {"sourceField": "SVP Name", "dataType": "string", "required": True, "transformation": "trim"},
                "department": {"sourceField": "Department", "dataType": "string", "required": True, "transformation": "trim"},
                "allocated_budget": {"sourceField": "Allocated Budget", "dataType": "number", "required": True},
                "spent_amount": {"sourceField": "Spent Amount", "dataType": "number", "required": True},
                "remaining_budget": {"sourceField": "Remaining Budget", "dataType": "number", "defaultValue": 0},
                "active_projects": {"sourceField": "Active Projects", "dataType": "number", "defaultValue": 0},
                "last_updated": {"sourceField": "Last Updated", "dataType": "date"},
            },
        },
        "destination": {
            "type": "database",
            "location": _database_url(),
            "table": "budget_data",
            "keyFields": ["svp_id"],
        },
        "transformations": [
            {
                "field": "utilization_rate",
                "operation": "calculate",
                "parameters": {
                    "formula": "ratio",
                    "numerator": "spent_amount",
                    "denominator": "allocated_budget",
                    "scale": 100,
                },
            },
            {
                "field": "budget_status",
                "operation": "calculate",
                "parameters": {
                    "formula": "bucket",
                    "source": "utilization_rate",
                    "thresholds": [
                        {"max": 80, "label": "on_track"},
                        {"max": 95, "label": "at_risk"},
                    ],
                    "default": "over_budget",
                },
            },
            {
                "field": "svp_name",
                "operation": "clean",
                "parameters": {"removeSpecialChars": False, "removeExtraSpaces": True},
            },
        ],
        "schedule": "0 */6 * * *",
        "enabled": True,
    })


def project_etl() -> PipelineDefinition:
    return PipelineDefinition.model_validate({
        "name": "project_etl",
        "description": "Project progress, spend and delivery dates",
        "source": {
            "type": "excel",
            "location": "./data/projects/Project_Tracker_2024.xlsx",
            "mapping": {
                "project_id": {"sourceField": "Project ID", "dataType": "string", "required": True},
                "project_name": {"sourceField": "Project Name", "dataType": "string", "required": True, "transformation": "trim"},
                "status": {"sourceField": "Status", "dataType": "string", "required": True, "transformation": "lowercase"},
                "progress_percent": {"sourceField": "Progress %", "dataType": "number", "required": True},
                "budget_allocated": {"sourceField": "Budget Allocated", "dataType": "number", "required": True},
                "budget_spent": {"sourceField": "Budget Spent", "dataType": "number", "required": True},
                "start_date": {"sourceField": "Start Date", "dataType": "date", "required": True},
                "end_date": {"sourceField": "End Date", "dataType": "date", "required": True},
                "svp_owner": {"sourceField": "SVP Owner", "dataType": "string", "required": True, "transformation": "trim"},
                "risk_level": {"sourceField": "Risk Level", "dataType": "string", "defaultValue": "Low"},
            },
        },
        "destination": {
            "type": "database",
            "location": _database_url(),
            "table": "project_data",
            "keyFields": ["project_id"],
        },
        "transformations": [
            {
                "field": "budget_utilization",
                "operation": "calculate",
                "parameters": {
                    "formula": "ratio",
                    "numerator": "budget_spent",
                    "denominator": "budget_allocated",
                    "scale": 100,
                },
            },
            {
                "field": "days_remaining",
                "operation": "calculate",
                "parameters": {"formula": "days_until", "field": "end_date"},
            },
            {
                "field": "project_health",
                "operation": "calculate",
                "parameters": {
                    "formula": "weighted_score",
                    "base": 50,
                    "weights": {"progress_percent": 0.5, "budget_utilization": -0.25},
                },
            },
        ],
        "schedule": "0 */4 * * *",
        "enabled": True,
    })


def compliance_etl() -> PipelineDefinition:
    return PipelineDefinition.model_validate({
        "name": "compliance_etl",
        "description": "Regulatory compliance status and audit calendar",
        "source": {
            "type": "excel",
            "location": "./data/compliance/Compliance_Tracker_2024.xlsx",
            "mapping": {
                "regulation_id": {"sourceField": "Regulation ID", "dataType": "string", "required": True},
                "regulation_name": {"sourceField": "Regulation Name", "dataType": "string", "required": True, "transformation": "trim"},
                "compliance_status": {"sourceField": "Compliance Status", "dataType": "string", "required": True, "transformation": "lowercase"},
                "last_audit_date": {"sourceField": "Last Audit Date", "dataType": "date"},
                "next_audit_date": {"sourceField": "Next Audit Date", "dataType": "date", "required": True},
                "risk_score": {"sourceField": "Risk Score", "dataType": "number", "required": True},
                "responsible_department": {"sourceField": "Responsible Department", "dataType": "string", "required": True, "transformation": "trim"},
                "findings_count": {"sourceField": "Findings Count", "dataType": "number", "defaultValue": 0},
            },
        },
        "destination": {
            "type": "database",
            "location": _database_url(),
            "table": "compliance_data",
            "keyFields": ["regulation_id"],
        },
        "transformations": [
            {
                "field": "days_to_audit",
                "operation": "calculate",
                "parameters": {"formula": "days_until", "field": "next_audit_date"},
            },
            {
                "field": "compliance_health",
                "operation": "calculate",
                "parameters": {
                    "formula": "weighted_score",
                    "base": 100,
                    "weights": {"risk_score": -0.5, "findings_count": -5},
                },
            },
        ],
        "schedule": "0 8 * * *",
        "enabled": True,
    })


def large_data_etl() -> PipelineDefinition:
    return PipelineDefinition.model_validate({
        "name": "large_data_etl",
        "description": "Bulk generated dataset written to a local file",
        "source": {
            "type": "json",
            "location": "./data/generated/large_dataset.json",
            "mapping": {
                "id": {"sourceField": "id", "dataType": "string", "required": True},
                "name": {"sourceField": "name", "dataType": "string", "required": True, "transformation": "trim"},
                "value": {"sourceField": "value", "dataType": "number", "required": True},
                "category": {"sourceField": "category", "dataType": "string", "required": True, "transformation": "lowercase"},
                "created_at": {"sourceField": "created_at", "dataType": "date"},
            },
        },
        "destination": {
            "type": "file",
            "location": "./data/processed/large_dataset_processed.json",
        },
        "transformations": [
            {
                "field": "name",
                "operation": "clean",
                "parameters": {"removeSpecialChars": False, "removeExtraSpaces": True},
            },
            {
                "field": "value",
                "operation": "validate",
                "parameters": {"minValue": 0, "maxValue": 1000000},
            },
        ],
        "schedule": "0 2 * * *",
        "enabled": False,
    })


def default_definitions() -> list[PipelineDefinition]:
    return [budget_etl(), project_etl(), compliance_etl(), large_data_etl()]
