"""
Task ledger tests.

Verifies:
- Tasks are always created pending; partial updates leave other fields alone
- First assignment moves a pending task to in_progress
- Completing a task queues one pending Payment per unpaid assignment, once
- Deleting a task removes its assignments but keeps payments
"""

import pytest

from studiodesk.extensions import db
from studiodesk.models import Payment, Task, TaskAssignment
from studiodesk.services import dashboard_service, task_service
from studiodesk.validation import NotFoundError, ValidationError


# =============================================================================
# CREATE / UPDATE
# =============================================================================


class TestCreateAndUpdate:
    def test_status_forced_pending(self, make_task):
        task = make_task(status="completed")
        assert task.status == "pending"

    def test_remaining_amount_defaults_from_budget(self, make_task):
        task = make_task(total_budget=1000, payment_received_amount=250)
        assert task.remaining_amount == 750

    def test_missing_required_fields(self, db_session):
        with pytest.raises(ValidationError, match="Missing required fields"):
            task_service.create_task({"project_name": "Only a name"})

    def test_rejects_decimal_budget(self, make_task):
        with pytest.raises(ValidationError):
            make_task(total_budget=10.5)

    def test_rejects_unknown_payment_status(self, make_task):
        with pytest.raises(ValidationError, match="payment_status"):
            make_task(payment_status="overdue")

    def test_partial_update_keeps_other_fields(self, make_task):
        task = make_task(reference_files=["file-1"])
        before = task.to_dict()

        task_service.update_task(task.id, {"client_name": "Globex"})

        db.session.expire_all()
        after = db.session.get(Task, task.id).to_dict()
        assert after["client_name"] == "Globex"
        for key, value in before.items():
            if key != "client_name":
                assert after[key] == value, key

    def test_update_missing_task(self, db_session):
        with pytest.raises(NotFoundError):
            task_service.update_task(9999, {"client_name": "Nobody"})

    def test_update_rejects_unknown_field(self, make_task):
        task = make_task()
        with pytest.raises(ValidationError, match="Field not allowed"):
            task_service.update_task(task.id, {"created_at": "2020-01-01T00:00:00Z"})


# =============================================================================
# ASSIGNMENTS
# =============================================================================


class TestAssignments:
    def test_first_assignment_starts_task(self, make_task, staff_user):
        task = make_task()
        assignment = task_service.assign_staff(task.id, staff_user.id, "Editor", 400)

        assert assignment.payment_status == "pending"
        assert db.session.get(Task, task.id).status == "in_progress"

    def test_assignment_does_not_reopen_completed_task(self, make_task, staff_user, make_user):
        task = make_task()
        task_service.assign_staff(task.id, staff_user.id, "Editor", 400)
        task_service.mark_completed(task.id)

        task_service.assign_staff(task.id, make_user().id, "Colorist", 100)
        assert db.session.get(Task, task.id).status == "completed"

    def test_duplicate_assignment_allowed(self, make_task, staff_user):
        task = make_task()
        task_service.assign_staff(task.id, staff_user.id, "Editor", 400)
        task_service.assign_staff(task.id, staff_user.id, "Editor", 400)

        assert len(task_service.get_assignments(task.id)) == 2

    def test_assign_to_missing_task(self, staff_user):
        with pytest.raises(NotFoundError, match="Task not found"):
            task_service.assign_staff(9999, staff_user.id, "Editor", 400)

    def test_assign_missing_staff(self, make_task):
        task = make_task()
        with pytest.raises(NotFoundError, match="Staff member not found"):
            task_service.assign_staff(task.id, 9999, "Editor", 400)

    def test_negative_salary_rejected(self, make_task, staff_user):
        task = make_task()
        with pytest.raises(ValidationError):
            task_service.assign_staff(task.id, staff_user.id, "Editor", -5)

    def test_remove_assignment_leaves_status(self, make_task, staff_user):
        task = make_task()
        assignment = task_service.assign_staff(task.id, staff_user.id, "Editor", 400)

        task_service.remove_assignment(assignment.id)

        assert task_service.get_assignments(task.id) == []
        assert db.session.get(Task, task.id).status == "in_progress"

    def test_task_detail_includes_staff_names(self, make_task, staff_user):
        task = make_task()
        task_service.assign_staff(task.id, staff_user.id, "Editor", 400)

        detail = task_service.get_task_detail(task.id)
        assert detail["assignments"][0]["staff_name"] == "Jane Doe"
        assert task_service.get_task_detail(9999) is None

    def test_staff_tasks_carry_salary_status(self, make_task, staff_user):
        task = make_task(payment_status="paid")
        task_service.assign_staff(task.id, staff_user.id, "Editor", 400)

        rows = task_service.get_staff_tasks(staff_user.id)
        assert len(rows) == 1
        assert rows[0]["id"] == task.id
        assert rows[0]["assigned_salary"] == 400
        # assignment salary status shadows the task's client payment status
        assert rows[0]["payment_status"] == "pending"


# =============================================================================
# COMPLETION -> PAYMENT GENERATION
# =============================================================================


class TestCompletion:
    def test_one_pending_payment_per_assignment(self, make_task, staff_user, make_user):
        other = make_user()
        task = make_task()
        task_service.assign_staff(task.id, staff_user.id, "Editor", 400)
        task_service.assign_staff(task.id, other.id, "Sound", 150)

        created = task_service.mark_completed(task.id)

        assert sorted(p.amount for p in created) == [150, 400]
        assert all(p.status == "pending" for p in created)
        assert db.session.get(Task, task.id).status == "completed"

    def test_completion_is_idempotent(self, make_task, staff_user):
        task = make_task()
        task_service.assign_staff(task.id, staff_user.id, "Editor", 400)

        task_service.mark_completed(task.id)
        task_service.mark_completed(task.id)

        payments = db.session.query(Payment).filter_by(staff_id=staff_user.id).all()
        assert [p.amount for p in payments] == [400]

    def test_paid_assignments_are_skipped(self, make_task, staff_user):
        task = make_task()
        assignment = task_service.assign_staff(task.id, staff_user.id, "Editor", 400)
        assignment.payment_status = "paid"
        db.session.commit()

        assert task_service.mark_completed(task.id) == []

    def test_completion_does_not_mark_assignment_paid(self, make_task, staff_user):
        task = make_task()
        assignment = task_service.assign_staff(task.id, staff_user.id, "Editor", 400)
        task_service.mark_completed(task.id)

        assert db.session.get(TaskAssignment, assignment.id).payment_status == "pending"

    def test_update_status_completed_is_mark_completed(self, make_task, staff_user):
        task = make_task()
        task_service.assign_staff(task.id, staff_user.id, "Editor", 400)

        created = task_service.update_status(task.id, "completed")
        assert [p.amount for p in created] == [400]

    def test_update_status_other_values_are_plain_patch(self, make_task, staff_user):
        task = make_task()
        task_service.assign_staff(task.id, staff_user.id, "Editor", 400)

        assert task_service.update_status(task.id, "pending") == []
        assert db.session.get(Task, task.id).status == "pending"
        assert db.session.query(Payment).count() == 0

    def test_update_status_rejects_unknown(self, make_task):
        task = make_task()
        with pytest.raises(ValidationError):
            task_service.update_status(task.id, "archived")

    def test_complete_missing_task(self, db_session):
        with pytest.raises(NotFoundError):
            task_service.mark_completed(9999)

    def test_scenario_complete_unpaid_task(self, make_task, staff_user):
        task = make_task(total_budget=1000, payment_status="pending")
        task_service.assign_staff(task.id, staff_user.id, "Editor", 400)
        task_service.mark_completed(task.id)

        payments = db.session.query(Payment).all()
        assert [(p.amount, p.status) for p in payments] == [(400, "pending")]

        metrics = dashboard_service.get_metrics("all")
        assert metrics["total_income"] == 0
        assert metrics["task_payments_pending"] == 400


# =============================================================================
# DELETE
# =============================================================================


class TestRemoveTask:
    def test_cascades_assignments_keeps_payments(self, make_task, staff_user):
        task = make_task()
        task_service.assign_staff(task.id, staff_user.id, "Editor", 400)
        task_service.mark_completed(task.id)

        task_service.remove_task(task.id)

        assert db.session.get(Task, task.id) is None
        assert db.session.query(TaskAssignment).count() == 0
        assert db.session.query(Payment).count() == 1

    def test_remove_missing_task(self, db_session):
        with pytest.raises(NotFoundError):
            task_service.remove_task(9999)


# =============================================================================
# ATOMICITY
# =============================================================================


class TestCompletionAtomicity:
    def test_failure_midway_leaves_no_partial_writes(self, make_task, staff_user, make_user, monkeypatch):
        task = make_task()
        first = task_service.assign_staff(task.id, staff_user.id, "Editor", 400)
        second = task_service.assign_staff(task.id, make_user().id, "Sound", 150)

        real_payment = task_service.Payment
        created = []

        def failing_payment(**kwargs):
            created.append(kwargs)
            if len(created) == 2:
                raise RuntimeError("payment ledger unavailable")
            return real_payment(**kwargs)

        monkeypatch.setattr(task_service, "Payment", failing_payment)

        with pytest.raises(RuntimeError):
            task_service.mark_completed(task.id)

        assert db.session.get(Task, task.id).status == "in_progress"
        assert db.session.query(Payment).count() == 0
        for assignment_id in (first.id, second.id):
            assert db.session.get(TaskAssignment, assignment_id).payment_queued_at is None

        # The task can still be completed once the failure clears
        monkeypatch.setattr(task_service, "Payment", real_payment)
        assert sorted(p.amount for p in task_service.mark_completed(task.id)) == [150, 400]
