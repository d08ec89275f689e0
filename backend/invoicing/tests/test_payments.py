from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from invoicing.exceptions import PaymentNotAllowed
from invoicing.models import Invoice, PaymentStage
from invoicing.services.access import AccessScope
from invoicing.services.payments import (
    bulk_mark_paid,
    bulk_settle,
    mass_settle,
    unpaid_summary,
)
from invoicing.tests.base import APITestBase
from invoicing.tests.factories import (
    make_admin,
    make_client,
    make_company,
    make_file,
    make_invoice,
)

C2D = PaymentStage.CLIENT_TO_DISTRIBUTOR
D2A = PaymentStage.DISTRIBUTOR_TO_ADMIN
A2C = PaymentStage.ADMIN_TO_COMPANY


class DerivedStatusTests(TestCase):
    def setUp(self):
        self.admin = make_admin()
        self.invoice = make_invoice(self.admin)

    def test_blocking_stage_priority(self):
        self.assertEqual(self.invoice.blocking_stage, A2C)
        self.assertEqual(self.invoice.payment_status_display, "Pending")

        self.invoice.mark_payment_step(A2C, self.admin)
        self.assertEqual(self.invoice.blocking_stage, D2A)
        self.assertEqual(self.invoice.progress_percent, 33)

        self.invoice.mark_payment_step(D2A, self.admin)
        self.assertEqual(self.invoice.blocking_stage, C2D)
        self.assertEqual(self.invoice.progress_percent, 67)

    def test_all_stages_paid(self):
        for stage in PaymentStage:
            self.invoice.mark_payment_step(stage, self.admin)

        self.assertIsNone(self.invoice.blocking_stage)
        self.assertEqual(self.invoice.payment_status_display, "Paid")
        self.assertEqual(self.invoice.progress_percent, 100)


class PaymentStepApiTests(APITestBase):
    def setUp(self):
        super().setUp()
        self.invoice = make_invoice(self.admin, self.distributor, total=500)

    def _url(self, stage, invoice=None):
        return f"/api/invoices/{(invoice or self.invoice).id}/payment/{stage}/"

    def test_assigned_distributor_marks_client_leg(self):
        self.auth_as(self.distributor)
        response = self.client.post(self._url(C2D))
        self.assertEqual(response.status_code, 200, response.data)

        status = response.data["data"]["paymentStatus"][C2D]
        self.assertTrue(status["isPaid"])
        self.assertEqual(status["markedBy"], self.distributor.id)
        self.assertIsNotNone(status["paidAt"])

    def test_re_marking_is_rejected_and_state_unchanged(self):
        self.auth_as(self.distributor)
        self.client.post(self._url(C2D))
        self.invoice.refresh_from_db()
        paid_at = self.invoice.client_to_distributor_paid_at

        response = self.client.post(self._url(C2D))
        self.assertEqual(response.status_code, 409)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.client_to_distributor_paid_at, paid_at)
        self.assertEqual(self.invoice.client_to_distributor_marked_by, self.distributor)

    def test_other_distributor_cannot_mark(self):
        self.auth_as(self.distributor_b)
        response = self.client.post(self._url(C2D))
        self.assertEqual(response.status_code, 404)
        self.invoice.refresh_from_db()
        self.assertFalse(self.invoice.client_to_distributor_paid)

    def test_distributor_cannot_mark_downstream_legs(self):
        self.auth_as(self.distributor)
        response = self.client.post(self._url(D2A))
        self.assertEqual(response.status_code, 403)

    def test_admin_cannot_mark_client_leg(self):
        response = self.client.post(self._url(C2D))
        self.assertEqual(response.status_code, 403)
        self.assertFalse(response.data["success"])

    def test_admin_marks_own_invoice_only(self):
        response = self.client.post(self._url(D2A))
        self.assertEqual(response.status_code, 200)

        other_admin = make_admin()
        foreign = make_invoice(other_admin, self.distributor)
        response = self.client.post(self._url(A2C, foreign))
        self.assertEqual(response.status_code, 403)

    def test_unknown_step_is_a_validation_error(self):
        response = self.client.post(self._url("clientToAdmin"))
        self.assertEqual(response.status_code, 400)

    def test_unmark_is_admin_only(self):
        self.auth_as(self.distributor)
        self.client.post(self._url(C2D))

        response = self.client.delete(self._url(C2D))
        self.assertEqual(response.status_code, 403)

        self.auth_as(self.admin)
        response = self.client.delete(self._url(C2D))
        self.assertEqual(response.status_code, 200)

        self.invoice.refresh_from_db()
        self.assertFalse(self.invoice.client_to_distributor_paid)
        self.assertIsNone(self.invoice.client_to_distributor_marked_by)
        self.assertIsNone(self.invoice.client_to_distributor_paid_at)


class BulkPayApiTests(APITestBase):
    def test_distributor_settles_client(self):
        client_entity = make_client()
        mine = [
            make_invoice(self.admin, self.distributor, client=client_entity, total=100 * i)
            for i in (1, 2, 3)
        ]
        foreign = make_invoice(self.admin, self.distributor_b, client=client_entity, total=999)

        self.auth_as(self.distributor)
        response = self.client.post(f"/api/invoices/bulk-pay/client/{client_entity.id}/")
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["data"]["processedCount"], 3)
        self.assertEqual(response.data["data"]["totalAmount"], 600)
        self.assertEqual(response.data["data"]["errors"], [])

        for invoice in mine:
            invoice.refresh_from_db()
            self.assertTrue(invoice.client_to_distributor_paid)
            self.assertEqual(invoice.client_to_distributor_marked_by, self.distributor)

        foreign.refresh_from_db()
        self.assertFalse(foreign.client_to_distributor_paid)

    def test_admin_cannot_settle_clients(self):
        client_entity = make_client()
        make_invoice(self.admin, self.distributor, client=client_entity)

        response = self.client.post(f"/api/invoices/bulk-pay/client/{client_entity.id}/")
        self.assertEqual(response.status_code, 403)

    def test_nothing_to_settle_is_not_found(self):
        response = self.client.post(f"/api/invoices/bulk-pay/distributor/{self.distributor.id}/")
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.data["success"])

    def test_admin_settles_company_through_files(self):
        company = make_company()
        file = make_file(company=company)
        invoice = make_invoice(self.admin, self.distributor, file=file, total=40)
        other_file_invoice = make_invoice(self.admin, self.distributor, file=make_file(), total=60)

        response = self.client.post(f"/api/invoices/bulk-pay/company/{company.id}/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["data"]["processedCount"], 1)

        invoice.refresh_from_db()
        other_file_invoice.refresh_from_db()
        self.assertTrue(invoice.admin_to_company_paid)
        self.assertFalse(other_file_invoice.admin_to_company_paid)


class SettlementServiceTests(APITestBase):
    def setUp(self):
        super().setUp()
        self.scope = AccessScope.for_user(self.admin)

    def test_partial_failures_are_collected(self):
        invoices = [
            make_invoice(self.admin, self.distributor, code=f"B-{i}", total=10) for i in range(5)
        ]
        failing = {"B-1", "B-3"}
        original_save = Invoice.save

        def flaky_save(invoice, *args, **kwargs):
            if invoice.invoice_code in failing:
                raise DatabaseError("write failed")
            return original_save(invoice, *args, **kwargs)

        with mock.patch.object(Invoice, "save", autospec=True, side_effect=flaky_save):
            result = bulk_settle("distributor", self.distributor.id, self.scope)

        self.assertEqual(result.processed_count, 3)
        self.assertEqual(len(result.errors), 2)
        self.assertEqual(result.total_amount, 30)

        for invoice in invoices:
            invoice.refresh_from_db()
            self.assertEqual(invoice.distributor_to_admin_paid, invoice.invoice_code not in failing)

    def test_bulk_distributor_settlement_does_not_cascade(self):
        invoice = make_invoice(self.admin, self.distributor)

        bulk_settle("distributor", self.distributor.id, self.scope)

        invoice.refresh_from_db()
        self.assertTrue(invoice.distributor_to_admin_paid)
        self.assertFalse(invoice.client_to_distributor_paid)

    def test_wrong_role_is_rejected(self):
        scope = AccessScope.for_user(self.distributor)
        with self.assertRaises(PaymentNotAllowed):
            bulk_settle("distributor", self.distributor.id, scope)
        with self.assertRaises(PaymentNotAllowed):
            mass_settle("company", [1], scope)

    def test_bulk_mark_paid_picks_next_stage_per_actor(self):
        fresh = make_invoice(self.admin, self.distributor)
        company_paid = make_invoice(self.admin, self.distributor)
        company_paid.mark_payment_step(A2C, self.admin)
        company_paid.save()

        result = bulk_mark_paid([fresh.id, company_paid.id, 999999], self.scope)
        self.assertEqual(result.processed_count, 2)

        fresh.refresh_from_db()
        company_paid.refresh_from_db()
        self.assertTrue(fresh.admin_to_company_paid)
        self.assertFalse(fresh.distributor_to_admin_paid)
        self.assertTrue(company_paid.distributor_to_admin_paid)

    def test_bulk_mark_paid_checks_predicate(self):
        mine = make_invoice(self.admin, self.distributor)
        theirs = make_invoice(self.admin, self.distributor_b)

        result = bulk_mark_paid([mine.id, theirs.id], AccessScope.for_user(self.distributor))
        self.assertEqual(result.processed_count, 1)
        self.assertEqual(len(result.errors), 1)

        theirs.refresh_from_db()
        self.assertFalse(theirs.client_to_distributor_paid)


class MassPaymentApiTests(APITestBase):
    def test_distributor_mass_payment_cascades_client_leg(self):
        open_invoice = make_invoice(self.admin, self.distributor, total=100)
        collected = make_invoice(self.admin, self.distributor_b, total=50)
        collected.mark_payment_step(C2D, self.distributor_b)
        collected.save()

        response = self.client.post(
            "/api/invoices/mass-payment/",
            {"entityType": "distributor", "entityIds": [self.distributor.id, self.distributor_b.id],
             "notes": "Cash handover"},
            format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["data"]["processedCount"], 2)
        self.assertEqual(response.data["data"]["totalAmount"], 150)

        open_invoice.refresh_from_db()
        collected.refresh_from_db()
        self.assertTrue(open_invoice.distributor_to_admin_paid)
        self.assertTrue(open_invoice.client_to_distributor_paid)
        self.assertEqual(open_invoice.client_to_distributor_marked_by, self.admin)
        self.assertEqual(open_invoice.payment_notes, "Cash handover")
        # an existing client leg keeps its original marker
        self.assertEqual(collected.client_to_distributor_marked_by, self.distributor_b)

    def test_payment_method_prefixes_notes(self):
        invoice = make_invoice(self.admin, self.distributor)
        self.client.post(
            "/api/invoices/mass-payment/",
            {"entityType": "distributor", "entityIds": [self.distributor.id], "paymentMethod": "bank"},
            format="json",
        )
        invoice.refresh_from_db()
        self.assertEqual(invoice.payment_notes, "[bank]")

    def test_empty_selection_is_rejected(self):
        response = self.client.post(
            "/api/invoices/mass-payment/", {"entityType": "company", "entityIds": []}, format="json"
        )
        self.assertEqual(response.status_code, 400)


class UnpaidReportingTests(APITestBase):
    def test_unpaid_summary_for_admin(self):
        make_invoice(self.admin, self.distributor, total=100)
        make_invoice(self.admin, self.distributor, total=50)
        paid = make_invoice(self.admin, self.distributor_b, total=70)
        paid.mark_payment_step(D2A, self.admin)
        paid.save()

        response = self.client.get("/api/invoices/unpaid-data/distributor/")
        self.assertEqual(response.status_code, 200)
        rows = response.data["data"]
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["entityId"], self.distributor.id)
        self.assertEqual(rows[0]["invoiceCount"], 2)
        self.assertEqual(rows[0]["totalAmount"], 150)

    def test_wrong_role_gets_empty_summary(self):
        make_invoice(self.admin, self.distributor)
        self.assertEqual(unpaid_summary("company", AccessScope.for_user(self.distributor)), [])

    def test_invalid_entity_type(self):
        response = self.client.get("/api/invoices/unpaid-data/planet/")
        self.assertEqual(response.status_code, 400)

    def test_customer_debts_are_scoped(self):
        client_a = make_client(full_name="Alpha")
        client_b = make_client(full_name="Beta")
        make_invoice(self.admin, self.distributor, client=client_a, total=100, tax_amount=10)
        make_invoice(self.admin, self.distributor, client=client_a, total=200, tax_amount=20)
        make_invoice(self.admin, self.distributor_b, client=client_b, total=500)

        self.auth_as(self.distributor)
        response = self.client.get("/api/invoices/customer-debts/")
        self.assertEqual(response.status_code, 200)
        rows = response.data["data"]
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["customerName"], "Alpha")
        self.assertEqual(rows[0]["invoiceCount"], 2)
        self.assertEqual(rows[0]["totalAmount"], 300)
        self.assertEqual(rows[0]["totalTax"], 30)

        self.auth_as(self.admin)
        rows = self.client.get("/api/invoices/customer-debts/").data["data"]
        self.assertEqual([row["customerName"] for row in rows], ["Beta", "Alpha"])
