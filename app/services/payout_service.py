"""
Payout Service - module completion, blockers and the payout ledger.

PAYMENT RELEASE:
A module's payout is released only when the recruiter confirms its
acceptance criterion. The payout is split cent-exact between the accepted
squad members holding the module's role (or the whole squad when the
module has no role) and written to the SQL ledger.

CONSISTENCY:
- Ledger rows are flushed inside a transaction, so the unique constraint
  rejects a second release of the same module before anything else happens
- The job document is then written with a compare-and-set on `revision`;
  losing the race rolls the transaction back (409)
- The ledger commit comes last. If it fails, the job document is put back
  to its state before the release
"""

import copy
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app.core.auth import ensure_same_user
from app.db.postgres import get_db_session, execute_raw_sql
from app.services.mongo_service import JobService, new_id
from app.services.job_service import JobPostingService, ensure_job_owner, save_job
from app.services.squad_service import find_module, find_member, active_squad
from app.schemas.schemas import ModuleCompleteRequest, BlockerReport, BlockerResolve
from app.utils.money import split_evenly, to_cents, from_cents

logger = logging.getLogger(__name__)

INSERT_PAYOUT_SQL = """
    INSERT INTO module_payouts (job_id, module_id, squad_id, member_id, amount, source, reference_id, released_at)
    VALUES (:job_id, :module_id, :squad_id, :member_id, :amount, :source, :reference_id, :released_at)
"""


def _record_payouts(db, rows: List[dict]):
    for row in rows:
        db.execute(text(INSERT_PAYOUT_SQL), row)


def payout_recipients(squad: dict, module: dict) -> List[dict]:
    """
    Accepted members holding the module's role.
    Falls back to every accepted member if the module has no role
    or nobody in the squad holds it.
    """
    accepted = [m for m in squad["members"] if m["status"] == "Accepted"]
    if module.get("role_id"):
        holders = [m for m in accepted if m.get("role_id") == module["role_id"]]
        if holders:
            return holders
        logger.warning("No squad member holds role %s; paying module %s to the whole squad",
                       module.get("role_title"), module["module_id"])
    return accepted


def has_open_blocker(module: dict) -> bool:
    return any(b["status"] == "Open" for b in module.get("blockers", []))


def job_state(job: dict) -> dict:
    """Copy of the fields a payout or compensation release rewrites."""
    return copy.deepcopy({
        "modules": job.get("modules", []),
        "squads": job.get("squads", []),
        "status": job.get("status"),
        "compensation_used": job.get("compensation_used", 0.0)
    })


class PayoutService:
    """
    Module completion, blocker reporting/resolution and ledger queries.
    """

    def __init__(self):
        self.jobs = JobService()
        self.postings = JobPostingService()

    def _active_squad_or_409(self, job: dict) -> dict:
        squad = active_squad(job)
        if squad is None:
            raise HTTPException(status_code=409, detail="No active squad for this job")
        return squad

    def _save_and_commit(self, db, job: dict, fields: dict, previous: dict):
        """Write the job, then commit the ledger. A failed commit puts the job back."""
        save_job(self.jobs, job, fields)
        try:
            db.commit()
        except Exception:
            if not self.jobs.compare_and_set(job["job_id"], job["revision"] + 1, previous):
                logger.error("Ledger commit failed and job %s could not be restored", job["job_id"])
            raise

    def complete_module(self, request: ModuleCompleteRequest, user: Optional[dict]) -> dict:
        """
        Review a module against its acceptance criterion.

        criteria_met=False -> ChangesRequested, nothing paid
        criteria_met=True  -> Completed, payout released to the ledger
        """
        job = self.postings.get_or_404(request.job_id)
        ensure_job_owner(user, job)
        squad = self._active_squad_or_409(job)
        module = find_module(job, request.module_id)

        if module["status"] == "Completed":
            raise HTTPException(status_code=409, detail="Module already completed")
        if has_open_blocker(module):
            raise HTTPException(status_code=409, detail="Module has open blockers")

        previous = job_state(job)
        now = datetime.utcnow()
        module["review_notes"] = request.notes

        if not request.criteria_met:
            module["status"] = "ChangesRequested"
            save_job(self.jobs, job, {"modules": job["modules"]})
            logger.info("Changes requested on module %s of job %s", module["module_id"], job["job_id"])
            return {
                "job_id": job["job_id"],
                "module_id": module["module_id"],
                "status": module["status"],
                "payouts": [],
                "squad_status": squad["status"],
                "job_status": job["status"]
            }

        recipients = payout_recipients(squad, module)
        amounts = split_evenly(module.get("payout", 0), len(recipients))
        payouts = [
            {"member_id": m["member_id"], "amount": amount, "source": "main"}
            for m, amount in zip(recipients, amounts) if amount > 0
        ]

        module["status"] = "Completed"
        module["completed_at"] = now
        module["paid_out"] = from_cents(sum(to_cents(p["amount"]) for p in payouts))

        fields = {"modules": job["modules"]}
        if all(m["status"] == "Completed" for m in job["modules"]):
            squad["status"] = "Completed"
            job["status"] = "Completed"
            fields.update({"squads": job["squads"], "status": "Completed"})

        try:
            with get_db_session() as db:
                _record_payouts(db, [
                    {
                        "job_id": job["job_id"],
                        "module_id": module["module_id"],
                        "squad_id": squad["squad_id"],
                        "member_id": p["member_id"],
                        "amount": p["amount"],
                        "source": "main",
                        "reference_id": module["module_id"],
                        "released_at": now
                    }
                    for p in payouts
                ])
                db.flush()
                self._save_and_commit(db, job, fields, previous)
        except IntegrityError:
            raise HTTPException(status_code=409, detail="Payout already released for this module")

        logger.info("Module %s of job %s completed; released %.2f to %d member(s)",
                    module["module_id"], job["job_id"], module["paid_out"], len(payouts))
        return {
            "job_id": job["job_id"],
            "module_id": module["module_id"],
            "status": module["status"],
            "payouts": payouts,
            "squad_status": squad["status"],
            "job_status": job["status"]
        }

    def report_blocker(self, report: BlockerReport, user: Optional[dict]) -> dict:
        """Squad members (or the recruiter) flag a module as blocked."""
        ensure_same_user(user, report.reported_by)
        job = self.postings.get_or_404(report.job_id)
        squad = self._active_squad_or_409(job)
        module = find_module(job, report.module_id)

        member = find_member(squad, report.reported_by)
        is_member = member is not None and member["status"] == "Accepted"
        if not is_member and report.reported_by != job.get("recruiter_id"):
            raise HTTPException(status_code=403, detail="Only squad members or the recruiter can report blockers")
        if module["status"] == "Completed":
            raise HTTPException(status_code=409, detail="Module already completed")

        module.setdefault("blockers", []).append({
            "blocker_id": new_id(),
            "reported_by": report.reported_by,
            "description": report.description.strip(),
            "severity": report.severity.value,
            "status": "Open",
            "reported_at": datetime.utcnow(),
            "resolution": None,
            "compensation": 0.0,
            "resolved_at": None
        })
        module["status"] = "Blocked"

        save_job(self.jobs, job, {"modules": job["modules"]})
        logger.info("Blocker (%s) reported on module %s of job %s by %s",
                    report.severity.value, module["module_id"], job["job_id"], report.reported_by)
        return module

    def resolve_blocker(self, request: BlockerResolve, user: Optional[dict]) -> dict:
        """
        Close a blocker, optionally compensating the reporter from the
        job's compensation pool.
        """
        job = self.postings.get_or_404(request.job_id)
        ensure_job_owner(user, job)
        module = find_module(job, request.module_id)

        blocker = next((b for b in module.get("blockers", []) if b["blocker_id"] == request.blocker_id), None)
        if blocker is None:
            raise HTTPException(status_code=404, detail="Blocker not found")
        if blocker["status"] != "Open":
            raise HTTPException(status_code=409, detail="Blocker already resolved")

        compensation_cents = to_cents(request.compensation)
        if compensation_cents > 0:
            if blocker["reported_by"] == job.get("recruiter_id"):
                raise HTTPException(status_code=400, detail="Compensation is only paid to squad members")
            remaining = to_cents(job.get("compensation_budget")) - to_cents(job.get("compensation_used"))
            if compensation_cents > remaining:
                raise HTTPException(status_code=400, detail="Compensation exceeds the remaining compensation budget")

        previous = job_state(job)
        now = datetime.utcnow()
        compensation = from_cents(compensation_cents)
        blocker.update({
            "status": "Resolved",
            "resolution": request.resolution,
            "compensation": compensation,
            "resolved_at": now
        })
        if module["status"] == "Blocked" and not has_open_blocker(module):
            module["status"] = "InProgress"

        fields = {
            "modules": job["modules"],
            "compensation_used": from_cents(to_cents(job.get("compensation_used")) + compensation_cents)
        }

        try:
            with get_db_session() as db:
                if compensation_cents > 0:
                    _record_payouts(db, [{
                        "job_id": job["job_id"],
                        "module_id": module["module_id"],
                        "squad_id": job.get("active_squad_id"),
                        "member_id": blocker["reported_by"],
                        "amount": compensation,
                        "source": "compensation",
                        "reference_id": blocker["blocker_id"],
                        "released_at": now
                    }])
                    db.flush()
                self._save_and_commit(db, job, fields, previous)
        except IntegrityError:
            raise HTTPException(status_code=409, detail="Compensation already paid for this blocker")

        logger.info("Blocker %s on module %s resolved (compensation %.2f)",
                    blocker["blocker_id"], module["module_id"], compensation)
        return module

    def summary(self, job_id: str, user: Optional[dict]) -> dict:
        """Ledger totals per member plus what is left in each budget."""
        job = self.postings.get_or_404(job_id)
        if user is not None and user["user_id"] != job.get("recruiter_id"):
            squad = active_squad(job) or next(
                (s for s in job.get("squads", []) if s["status"] == "Completed"), None
            )
            member = find_member(squad, user["user_id"]) if squad else None
            if member is None or member["status"] != "Accepted":
                raise HTTPException(status_code=403, detail="Access denied")

        rows = execute_raw_sql("""
            SELECT member_id, source, SUM(amount) AS amount
            FROM module_payouts
            WHERE job_id = :job_id
            GROUP BY member_id, source
            ORDER BY member_id
        """, {"job_id": job_id})

        members = {}
        paid = {"main": 0, "compensation": 0}
        for r in rows:
            cents = to_cents(r["amount"])
            entry = members.setdefault(r["member_id"], {"member_id": r["member_id"], "main": 0, "compensation": 0})
            entry[r["source"]] += cents
            paid[r["source"]] += cents

        return {
            "job_id": job_id,
            "members": [
                {
                    "member_id": m["member_id"],
                    "main": from_cents(m["main"]),
                    "compensation": from_cents(m["compensation"]),
                    "total": from_cents(m["main"] + m["compensation"])
                }
                for m in members.values()
            ],
            "total_paid": from_cents(paid["main"] + paid["compensation"]),
            "main_budget_remaining": from_cents(to_cents(job.get("main_budget")) - paid["main"]),
            "compensation_remaining": from_cents(to_cents(job.get("compensation_budget")) - paid["compensation"])
        }


def get_payout_service() -> PayoutService:
    """Get payout service instance."""
    return PayoutService()
