"""Tests for schedule translation and the Cron component"""

import json

import pytest

from components.cron import Cron, normalize_schedule
from components.error import ValidationError


class TestNormalizeSchedule:
    @pytest.mark.parametrize(
        "schedule",
        ["rate(1 minute)", "rate(5 minutes)", "cron(15 10 ? * 6L 2025)"],
    )
    def test_event_bridge_passes_through(self, schedule):
        assert normalize_schedule(schedule) == schedule

    def test_every_five_minutes(self):
        assert normalize_schedule("*/5 * * * *") == "cron(0/5 * * * ? *)"

    def test_weekdays_shift(self):
        assert normalize_schedule("0 9 * * 1-5") == "cron(0 9 ? * 2-6 *)"

    def test_sunday_as_seven(self):
        assert normalize_schedule("0 0 * * 7") == "cron(0 0 ? * 1 *)"

    def test_day_of_month(self):
        assert normalize_schedule("30 6 1 * *") == "cron(30 6 1 * ? *)"

    def test_day_step(self):
        assert normalize_schedule("0 0 */2 * *") == "cron(0 0 1/2 * ? *)"

    def test_both_days_restricted(self):
        with pytest.raises(ValidationError, match="both"):
            normalize_schedule("0 0 1 * 1")

    @pytest.mark.parametrize("schedule", ["every day", "* * * *", "hourly"])
    def test_invalid(self, schedule):
        with pytest.raises(ValidationError):
            normalize_schedule(schedule)


class TestCron:
    def test_declares_rule_target_and_permission(self, mocks, registry, deploy):
        function = "arn:aws:lambda:us-east-1:123456789012:function:report"

        def program():
            cron = Cron(
                "Report",
                schedule="rate(1 day)",
                function=function,
                event={"kind": "daily"},
                registry=registry,
            )
            assert set(cron.nodes) == {"rule", "target", "permission"}

        deploy(program)
        rule = mocks.named("ReportRule")
        assert rule.inputs["state"] == "ENABLED"
        target = mocks.named("ReportTarget")
        assert target.inputs["arn"] == function
        assert json.loads(target.inputs["input"]) == {"kind": "daily"}
        assert mocks.named("ReportPermission").inputs["principal"] == (
            "events.amazonaws.com"
        )

    def test_disabled(self, mocks, registry, deploy):
        def program():
            Cron("Report", schedule="rate(1 day)", function="arn:fn", enabled=False, registry=registry)

        deploy(program)
        assert mocks.named("ReportRule").inputs["state"] == "DISABLED"

    def test_job_and_function(self, mocks, registry):
        with pytest.raises(ValidationError, match="deprecated"):
            Cron("Report", schedule="rate(1 day)", function="arn:a", job="arn:b", registry=registry)
        assert mocks.resources == []

    def test_needs_function(self, registry):
        with pytest.raises(ValidationError, match="function"):
            Cron("Report", schedule="rate(1 day)", registry=registry)

    def test_job_warns(self, mocks, registry, deploy, monkeypatch):
        messages = []
        monkeypatch.setattr("components.cron.warn_once", messages.append)

        def program():
            Cron("Report", schedule="rate(1 day)", job="arn:fn", registry=registry)

        deploy(program)
        assert len(messages) == 1
        assert mocks.named("ReportTarget").inputs["arn"] == "arn:fn"
