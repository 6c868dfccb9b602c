import unittest
from datetime import timedelta, timezone

from studiodesk import create_app
from studiodesk.extensions import db
from studiodesk.models import Expense, Payment, Task, TaskAssignment, User
from studiodesk.services import dashboard_service
from studiodesk.time_utils import month_label, month_start, utcnow
from studiodesk.validation import ValidationError


def _task(**overrides) -> Task:
    now = utcnow()
    fields = dict(
        project_name="Brand film",
        client_name="Acme",
        task_type="video",
        deadline=now + timedelta(days=30),
        received_date=now,
        total_budget=1000,
        payment_status="pending",
        payment_received_amount=0,
        remaining_amount=1000,
        income_status="pending",
        status="pending",
        created_at=now,
    )
    fields.update(overrides)
    return Task(**fields)


class IncomeRuleTests(unittest.TestCase):
    def test_paid_or_received_counts_full_budget(self):
        self.assertEqual(dashboard_service.recognized_income(_task(payment_status="paid")), 1000)
        self.assertEqual(dashboard_service.recognized_income(_task(income_status="received")), 1000)

    def test_partial_counts_received_amount(self):
        task = _task(
            payment_status="partial",
            income_status="partial",
            payment_received_amount=300,
            remaining_amount=700,
        )
        self.assertEqual(dashboard_service.recognized_income(task), 300)
        self.assertEqual(dashboard_service.outstanding_income(task), 700)

    def test_pending_is_outstanding(self):
        task = _task()
        self.assertEqual(dashboard_service.recognized_income(task), 0)
        self.assertEqual(dashboard_service.outstanding_income(task), 1000)

    def test_pending_wins_over_partial_for_outstanding(self):
        task = _task(payment_status="partial", income_status="pending", payment_received_amount=300)
        self.assertEqual(dashboard_service.outstanding_income(task), 1000)

    def test_settled_task_has_nothing_outstanding(self):
        task = _task(payment_status="paid", income_status="received")
        self.assertEqual(dashboard_service.outstanding_income(task), 0)


class DashboardServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        self.now = utcnow()
        self.staff = User(username="jane@studio.test", full_name="Jane Doe", password_hash="x", role="staff")
        self.other = User(username="sam@studio.test", full_name="Sam Roe", password_hash="x", role="staff")
        db.session.add_all([self.staff, self.other])
        db.session.commit()

    def test_unknown_range_rejected(self):
        with self.assertRaises(ValidationError):
            dashboard_service.get_metrics("1w")
        with self.assertRaises(ValidationError):
            dashboard_service.window_start("forever")

    def test_all_range_has_no_window(self):
        self.assertIsNone(dashboard_service.window_start(None))
        self.assertIsNone(dashboard_service.window_start("all"))
        self.assertIsNotNone(dashboard_service.window_start(None, default="12m"))

    def test_metrics_filter_each_ledger_by_its_timestamp(self):
        old = self.now - timedelta(days=20)

        recent_task = _task(payment_status="paid", status="completed")
        old_task = _task(payment_status="paid", created_at=old, received_date=old)
        db.session.add_all([recent_task, old_task])
        db.session.flush()
        db.session.add_all([
            TaskAssignment(task_id=recent_task.id, staff_id=self.staff.id, assigned_role="Editor",
                           assigned_salary=400, payment_status="pending", assigned_at=self.now),
            TaskAssignment(task_id=old_task.id, staff_id=self.staff.id, assigned_role="Editor",
                           assigned_salary=250, payment_status="paid", assigned_at=old),
            Expense(type="advertising", amount=100, description="Ads", date=self.now),
            Expense(type="advertising", amount=900, description="Old ads", date=old),
            Payment(staff_id=self.staff.id, amount=400, status="pending", created_at=self.now),
            Payment(staff_id=self.staff.id, amount=250, status="completed", created_at=old),
        ])
        db.session.commit()

        week = dashboard_service.get_metrics("7d")
        self.assertEqual(week["total_income"], 1000)
        self.assertEqual(week["total_expenses"], 100)
        self.assertEqual(week["net_profit"], 900)
        self.assertEqual(week["task_payments_pending"], 400)
        self.assertEqual(week["task_payments_paid"], 0)
        self.assertEqual(week["pending_staff_payments"], 400)
        self.assertEqual(week["completed_staff_payments"], 0)
        self.assertEqual(week["total_tasks"], 1)
        self.assertEqual(week["completed_tasks"], 1)

        everything = dashboard_service.get_metrics("all")
        self.assertEqual(everything["total_income"], 2000)
        self.assertEqual(everything["total_expenses"], 1000)
        self.assertEqual(everything["net_profit"], 1000)
        self.assertEqual(everything["task_payments_paid"], 250)
        self.assertEqual(everything["completed_staff_payments"], 250)
        self.assertEqual(everything["total_tasks"], 2)
        self.assertEqual(everything["pending_tasks"], 1)

    def test_empty_ledgers(self):
        metrics = dashboard_service.get_metrics("30d")
        self.assertEqual(metrics["total_income"], 0)
        self.assertEqual(metrics["net_profit"], 0)
        self.assertEqual(metrics["total_tasks"], 0)
        self.assertEqual(dashboard_service.get_monthly_data(), [])
        self.assertEqual(dashboard_service.get_staff_payment_distribution(), [])

    def test_monthly_buckets_oldest_first(self):
        this_month = month_start(self.now)
        last_month = month_start(this_month - timedelta(days=1))
        long_ago = self.now - timedelta(days=800)

        db.session.add_all([
            _task(payment_status="paid", total_budget=1000, received_date=this_month),
            _task(payment_status="partial", payment_received_amount=200, received_date=last_month),
            _task(payment_status="paid", total_budget=5000, received_date=long_ago, created_at=long_ago),
            Expense(type="tax", amount=75, description="VAT", date=last_month + timedelta(days=2)),
        ])
        db.session.commit()

        months = dashboard_service.get_monthly_data()

        self.assertEqual([m["month"] for m in months], [month_label(last_month), month_label(this_month)])
        self.assertEqual(months[0]["income"], 200)
        self.assertEqual(months[0]["expenses"], 75)
        self.assertEqual(months[1]["income"], 1000)
        self.assertEqual(months[1]["expenses"], 0)
        self.assertEqual(
            months[0]["timestamp"],
            int(last_month.replace(tzinfo=timezone.utc).timestamp() * 1000),
        )

        # "all" reaches back past the default 12 months
        self.assertEqual(len(dashboard_service.get_monthly_data("all")), 3)

    def test_staff_distribution_largest_first(self):
        db.session.add_all([
            Payment(staff_id=self.staff.id, amount=300, status="completed", created_at=self.now),
            Payment(staff_id=self.staff.id, amount=200, status="pending", created_at=self.now),
            Payment(staff_id=self.other.id, amount=800, status="payout_requested", created_at=self.now),
            Payment(staff_id=9999, amount=50, status="pending", created_at=self.now),
        ])
        db.session.commit()

        rows = dashboard_service.get_staff_payment_distribution()

        self.assertEqual(rows, [
            {"name": "Sam Roe", "amount": 800},
            {"name": "Jane Doe", "amount": 500},
            {"name": "Unknown", "amount": 50},
        ])


if __name__ == "__main__":
    unittest.main()
