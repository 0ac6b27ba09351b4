"""Approval Gate: per-environment human sign-off before a deployment stage.

A request is opened when a deployment stage reaches its environment. It
stays `pending` until enough distinct approvers sign off, one approver
rejects, or its timeout passes. Terminal states are final.

All functions are pure: they take the current request and a timestamp and
return the new request, so run state can be persisted between decisions.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Literal, cast
from uuid import uuid4

from relflow.core.config import ENVIRONMENTS, EnvironmentConfig, EnvironmentName
from relflow.core.result import Err, Ok, Result
from relflow.core.structured import StrDict, as_obj_list, as_str_dict, get_bool, get_int, get_str

ApprovalStatus = Literal["pending", "approved", "rejected", "expired"]
DecisionKind = Literal["approve", "reject"]

PRODUCTION_MIN_APPROVERS = 2


@dataclass(frozen=True, slots=True)
class ApprovalError:
    kind: Literal[
        "already_decided",
        "expired",
        "not_allowed",
        "self_approval",
        "duplicate_approver",
        "invalid_input",
    ]
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ApprovalPolicy:
    min_approvers: int
    approvers: tuple[str, ...] = ()
    allow_self_approval: bool = False
    timeout: timedelta = timedelta(hours=72)

    def may_approve(self, who: str) -> bool:
        return not self.approvers or who in self.approvers


def policy_for(env: EnvironmentConfig) -> ApprovalPolicy:
    """Approval policy of an environment.

    Production is always multi-approver, whatever the configuration says.
    """
    min_approvers = env.min_approvers
    if env.name == "production":
        min_approvers = max(min_approvers, PRODUCTION_MIN_APPROVERS)
    return ApprovalPolicy(
        min_approvers=min_approvers,
        approvers=env.approvers,
        allow_self_approval=env.allow_self_approval,
        timeout=timedelta(hours=env.timeout_hours),
    )


@dataclass(frozen=True, slots=True)
class Decision:
    approver: str
    kind: DecisionKind
    at: datetime
    comment: str | None = None


@dataclass(frozen=True, slots=True)
class ApprovalRequest:
    id: str
    run_id: str
    stage: str
    environment: EnvironmentName
    requested_by: str
    requested_at: datetime
    policy: ApprovalPolicy
    status: ApprovalStatus = "pending"
    decisions: tuple[Decision, ...] = ()

    @property
    def expires_at(self) -> datetime:
        return self.requested_at + self.policy.timeout

    @property
    def approvers(self) -> tuple[str, ...]:
        return tuple(d.approver for d in self.decisions if d.kind == "approve")

    @property
    def remaining(self) -> int:
        return max(0, self.policy.min_approvers - len(self.approvers))

    @property
    def is_terminal(self) -> bool:
        return self.status != "pending"


def open_request(
    *,
    run_id: str,
    stage: str,
    environment: EnvironmentName,
    requested_by: str,
    policy: ApprovalPolicy,
    now: datetime | None = None,
) -> ApprovalRequest:
    """Open a request; a policy needing no approvers is approved immediately."""
    req = ApprovalRequest(
        id=f"apr-{uuid4().hex[:12]}",
        run_id=run_id,
        stage=stage,
        environment=environment,
        requested_by=requested_by,
        requested_at=now or datetime.now(tz=UTC),
        policy=policy,
    )
    if policy.min_approvers <= 0:
        return replace(req, status="approved")
    return req


def refresh(req: ApprovalRequest, *, now: datetime) -> ApprovalRequest:
    """Expire a pending request whose timeout has passed."""
    if req.status == "pending" and now >= req.expires_at:
        return replace(req, status="expired")
    return req


def _check_decidable(req: ApprovalRequest, now: datetime) -> Result[ApprovalRequest, ApprovalError]:
    req = refresh(req, now=now)
    if req.status == "expired":
        return Err(
            ApprovalError(
                kind="expired",
                message=f"approval for {req.stage} expired at {req.expires_at.isoformat()}",
                hint="Re-run the stage to request approval again.",
            )
        )
    if req.is_terminal:
        return Err(
            ApprovalError(
                kind="already_decided",
                message=f"approval for {req.stage} is already {req.status}",
            )
        )
    return Ok(req)


def approve(
    req: ApprovalRequest,
    *,
    approver: str,
    now: datetime | None = None,
    comment: str | None = None,
) -> Result[ApprovalRequest, ApprovalError]:
    at = now or datetime.now(tz=UTC)
    checked = _check_decidable(req, at)
    if isinstance(checked, Err):
        return checked
    req = checked.value

    who = approver.strip()
    if not who:
        return Err(ApprovalError(kind="invalid_input", message="approver name is required"))
    if not req.policy.may_approve(who):
        return Err(
            ApprovalError(
                kind="not_allowed",
                message=f"{who} is not an approver for {req.environment}",
                hint=f"Allowed: {', '.join(req.policy.approvers)}",
            )
        )
    if who == req.requested_by and not req.policy.allow_self_approval:
        return Err(
            ApprovalError(
                kind="self_approval",
                message=f"{who} requested this deployment and cannot approve it",
            )
        )
    if who in req.approvers:
        return Err(
            ApprovalError(
                kind="duplicate_approver",
                message=f"{who} already approved {req.stage}",
                hint=f"{req.remaining} more distinct approver(s) needed",
            )
        )

    decisions = (*req.decisions, Decision(who, "approve", at, comment))
    updated = replace(req, decisions=decisions)
    if len(updated.approvers) >= req.policy.min_approvers:
        updated = replace(updated, status="approved")
    return Ok(updated)


def reject(
    req: ApprovalRequest,
    *,
    approver: str,
    reason: str | None = None,
    now: datetime | None = None,
) -> Result[ApprovalRequest, ApprovalError]:
    at = now or datetime.now(tz=UTC)
    checked = _check_decidable(req, at)
    if isinstance(checked, Err):
        return checked
    req = checked.value

    who = approver.strip()
    if not who:
        return Err(ApprovalError(kind="invalid_input", message="approver name is required"))
    if not req.policy.may_approve(who):
        return Err(
            ApprovalError(
                kind="not_allowed",
                message=f"{who} is not an approver for {req.environment}",
            )
        )

    decisions = (*req.decisions, Decision(who, "reject", at, reason))
    return Ok(replace(req, decisions=decisions, status="rejected"))


# -----------------------------------------------------------------------------
# Serialization (run state files)
# -----------------------------------------------------------------------------


def request_to_dict(req: ApprovalRequest) -> dict[str, object]:
    return {
        "id": req.id,
        "run_id": req.run_id,
        "stage": req.stage,
        "environment": req.environment,
        "requested_by": req.requested_by,
        "requested_at": req.requested_at.isoformat(),
        "status": req.status,
        "policy": {
            "min_approvers": req.policy.min_approvers,
            "approvers": list(req.policy.approvers),
            "allow_self_approval": req.policy.allow_self_approval,
            "timeout_seconds": int(req.policy.timeout.total_seconds()),
        },
        "decisions": [
            {
                "approver": d.approver,
                "kind": d.kind,
                "at": d.at.isoformat(),
                "comment": d.comment,
            }
            for d in req.decisions
        ],
    }


def _parse_time(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def request_from_dict(data: StrDict) -> ApprovalRequest | None:
    """Parse a serialized request; returns None when the payload is malformed."""
    req_id = get_str(data, "id")
    run_id = get_str(data, "run_id")
    stage = get_str(data, "stage")
    environment = get_str(data, "environment")
    requested_by = get_str(data, "requested_by")
    requested_at = _parse_time(get_str(data, "requested_at"))
    status = get_str(data, "status")
    policy_raw = as_str_dict(data.get("policy"))
    if (
        req_id is None
        or run_id is None
        or stage is None
        or environment not in ENVIRONMENTS
        or requested_by is None
        or requested_at is None
        or status not in ("pending", "approved", "rejected", "expired")
        or policy_raw is None
    ):
        return None

    approvers_raw = as_obj_list(policy_raw.get("approvers")) or []
    policy = ApprovalPolicy(
        min_approvers=get_int(policy_raw, "min_approvers") or 0,
        approvers=tuple(a for a in approvers_raw if isinstance(a, str)),
        allow_self_approval=bool(get_bool(policy_raw, "allow_self_approval")),
        timeout=timedelta(seconds=get_int(policy_raw, "timeout_seconds") or 0),
    )

    decisions: list[Decision] = []
    for item in as_obj_list(data.get("decisions")) or []:
        d = as_str_dict(item)
        if d is None:
            continue
        who = get_str(d, "approver")
        kind = get_str(d, "kind")
        at = _parse_time(get_str(d, "at"))
        if who is None or kind not in ("approve", "reject") or at is None:
            continue
        decisions.append(Decision(who, cast(DecisionKind, kind), at, get_str(d, "comment")))

    return ApprovalRequest(
        id=req_id,
        run_id=run_id,
        stage=stage,
        environment=cast(EnvironmentName, environment),
        requested_by=requested_by,
        requested_at=requested_at,
        policy=policy,
        status=cast(ApprovalStatus, status),
        decisions=tuple(decisions),
    )
