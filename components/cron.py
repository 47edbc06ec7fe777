"""
Scheduled invocation of a Lambda function through EventBridge.

Schedules use EventBridge syntax (``rate(1 minute)``, ``cron(0 12 * * ? *)``)
or a classic 5-field cron expression, which is translated before the rule is
declared.
"""

import json
import re
from typing import Any

import pulumi
import pulumi_aws as aws

from components import component
from components.component import Component, Registry, Transform, warn_once
from components.error import ValidationError

ID: str = "cloudkit:aws:Cron"


def _weekday(match: re.Match) -> str:
    # Unix counts Sunday as 0 (or 7), EventBridge as 1.
    return str(int(match.group()) % 7 + 1)


def normalize_schedule(schedule: str) -> str:
    """
    Return an EventBridge schedule expression.

    ``rate(...)`` and ``cron(...)`` pass through. A 5-field unix expression
    "m h dom mon dow" becomes ``cron(m h dom mon dow *)``: weekdays shift to
    1-7, ``*/n`` steps become ``0/n`` (``1/n`` for day of month), and
    whichever of day-of-month/day-of-week is ``*`` becomes ``?``.

    Raises:
        ValidationError: neither form, or both day fields are restricted.
    """
    expression = schedule.strip()
    if re.fullmatch(r"(rate|cron)\(.+\)", expression):
        return expression

    fields = expression.split()
    if len(fields) != 5:
        raise ValidationError(
            f'Invalid schedule "{schedule}". Use "rate(...)", "cron(...)" or a '
            "5-field cron expression."
        )
    minute, hour, day, month, weekday = fields
    minute = re.sub(r"^\*/", "0/", minute)
    hour = re.sub(r"^\*/", "0/", hour)
    day = re.sub(r"^\*/", "1/", day)
    if "/" not in weekday:
        weekday = re.sub(r"\d+", _weekday, weekday)
    if weekday == "*":
        weekday = "?"
    elif day == "*":
        day = "?"
    else:
        raise ValidationError(
            f'Invalid schedule "{schedule}". EventBridge cannot restrict both '
            "the day of month and the day of week."
        )
    return f"cron({minute} {hour} {day} {month} {weekday} *)"


class Cron(Component):
    """
    EventBridge rule invoking a function on a schedule.

    Resources: EventRule, EventTarget and the Lambda Permission that lets
    EventBridge invoke the function.
    """

    def __init__(
        self,
        name: str,
        schedule: str,
        function: pulumi.Input[str] | None = None,
        job: pulumi.Input[str] | None = None,
        event: dict[str, Any] | None = None,
        enabled: bool = True,
        transform: dict[str, Transform] | None = None,
        opts: pulumi.ResourceOptions | None = None,
        registry: Registry | None = None,
    ):
        """
        Args:
            name: Component name.
            schedule: See ``normalize_schedule``.
            function: ARN of the function to invoke.
            job: Deprecated alias of ``function``.
            event: Payload passed to the function, JSON-encoded.
            enabled: Create the rule in the DISABLED state when False.
            transform: Hooks keyed by ``rule`` and ``target``.
        """
        if job is not None and function is not None:
            raise ValidationError(
                f'You cannot provide both "job" and "function" in the "{name}" '
                'Cron component. The "job" property has been deprecated. Use '
                '"function" instead.'
            )
        if job is not None:
            warn_once('The "job" property of Cron is deprecated. Use "function" instead.')
        target_arn = function if function is not None else job
        if target_arn is None:
            raise ValidationError(f'The "{name}" Cron component needs a "function".')
        expression = normalize_schedule(schedule)

        super().__init__(ID, name, opts, registry)

        hooks = transform or {}
        child_opts = pulumi.ResourceOptions(parent=self)

        rule_name, rule_args, rule_opts = component.transform(
            hooks.get("rule"),
            f"{name}Rule",
            {
                "schedule_expression": expression,
                "state": "ENABLED" if enabled else "DISABLED",
            },
            child_opts,
        )
        self.rule = aws.cloudwatch.EventRule(rule_name, opts=rule_opts, **rule_args)

        self.permission = aws.lambda_.Permission(
            f"{name}Permission",
            action="lambda:InvokeFunction",
            function=target_arn,
            principal="events.amazonaws.com",
            source_arn=self.rule.arn,
            opts=child_opts,
        )

        target_name, target_args, target_opts = component.transform(
            hooks.get("target"),
            f"{name}Target",
            {
                "arn": target_arn,
                "rule": self.rule.name,
                "input": json.dumps(event or {}),
            },
            child_opts,
        )
        self.target = aws.cloudwatch.EventTarget(
            target_name, opts=target_opts, **target_args
        )

        self.register_outputs({"rule": self.rule.arn})

    @property
    def nodes(self) -> dict[str, Any]:
        return {
            "rule": self.rule,
            "target": self.target,
            "permission": self.permission,
        }
