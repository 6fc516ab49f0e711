"""Checklist rules."""

from typing import List

from sqlmodel import Session, select

from ftjournal.db.models import Rule, RuleInput
from ftjournal.errors import NotFoundError, ValidationError


class RulesStore:

    @staticmethod
    def list(session: Session) -> List[Rule]:
        stmt = select(Rule).order_by(Rule.sort_order, Rule.id)
        return list(session.exec(stmt).all())

    @staticmethod
    def upsert(session: Session, rule: RuleInput) -> Rule:
        """Insert a new rule or replace label/sort_order of an existing one."""
        rule_id = (rule.id or "").strip()
        if not rule_id:
            raise ValidationError("rule id is required")

        row = session.get(Rule, rule_id)
        if row is None:
            row = Rule(id=rule_id, label=rule.label, sort_order=rule.sort_order)
        else:
            row.label = rule.label
            row.sort_order = rule.sort_order

        session.add(row)
        session.flush()
        return row

    @staticmethod
    def delete(session: Session, rule_id: str):
        """Remove a rule. Checks recorded against it on trades are left in place."""
        row = session.get(Rule, rule_id)
        if row is None:
            raise NotFoundError(f"rule not found: {rule_id}")
        session.delete(row)
        session.flush()
