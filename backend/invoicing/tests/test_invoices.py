from invoicing.exceptions import NotFoundOrForbidden
from invoicing.models import CommissionTier, Invoice
from invoicing.services.access import AccessScope
from invoicing.services.invoices import get_visible_invoice
from invoicing.tests.base import APITestBase
from invoicing.tests.factories import (
    make_client,
    make_company,
    make_distributor,
    make_file,
    make_invoice,
    make_tier,
)


class InvoiceCreateTests(APITestBase):
    def test_create_sets_author_and_defaults(self):
        client_entity = make_client()
        response = self.client.post(
            "/api/invoices/",
            {"invoiceCode": "  INV-1 ", "client": client_entity.id, "assignedDistributor": self.distributor.id,
             "total": "250.5", "taxAmount": "abc"},
            format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)

        invoice = Invoice.objects.get(pk=response.data["id"])
        self.assertEqual(invoice.invoice_code, "INV-1")
        self.assertEqual(invoice.created_by, self.admin)
        self.assertEqual(invoice.total, 250.5)
        self.assertEqual(invoice.tax_amount, 0)
        self.assertFalse(invoice.is_approved)
        self.assertEqual(invoice.paid_stage_count, 0)

    def test_duplicate_code_is_rejected(self):
        first = self.client.post("/api/invoices/", {"invoiceCode": "DUP-1", "total": 10}, format="json")
        self.assertEqual(first.status_code, 201, first.data)

        second = self.client.post("/api/invoices/", {"invoiceCode": "DUP-1", "total": 20}, format="json")
        self.assertEqual(second.status_code, 409)
        self.assertFalse(second.data["success"])
        self.assertEqual(Invoice.objects.filter(invoice_code="DUP-1").count(), 1)

    def test_blank_code_is_a_validation_error(self):
        response = self.client.post("/api/invoices/", {"invoiceCode": "   ", "total": 10}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Invoice.objects.exists())

    def test_dangling_reference_is_stored_empty(self):
        response = self.client.post(
            "/api/invoices/", {"invoiceCode": "INV-X", "client": 999999, "total": 10}, format="json"
        )
        self.assertEqual(response.status_code, 201, response.data)
        self.assertIsNone(Invoice.objects.get(invoice_code="INV-X").client_id)

    def test_distributor_can_create_for_themselves(self):
        self.auth_as(self.distributor)
        response = self.client.post(
            "/api/invoices/",
            {"invoiceCode": "D-1", "assignedDistributor": self.distributor.id, "total": 10},
            format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["createdBy"], self.distributor.id)


class InvoiceUpdateTests(APITestBase):
    def setUp(self):
        super().setUp()
        self.client_entity = make_client()
        make_tier(CommissionTier.ENTITY_CLIENT, self.client_entity.id, 0, 2000, rate=5)
        make_tier(CommissionTier.ENTITY_CLIENT, self.client_entity.id, 2000, None, rate=8)

    def test_approved_invoice_keeps_monetary_fields(self):
        invoice = make_invoice(
            self.admin, self.distributor, client=self.client_entity, total=1000,
            client_commission_rate=5, is_approved=True,
        )

        response = self.client.patch(
            f"/api/invoices/{invoice.id}/",
            {"total": "5000", "customClientCommissionRate": "20", "status": "sent"},
            format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)

        invoice.refresh_from_db()
        self.assertEqual(invoice.total, 1000)
        self.assertEqual(invoice.client_commission_rate, 5)
        self.assertIsNone(invoice.custom_client_commission_rate)
        self.assertEqual(invoice.status, "sent")

    def test_unapproved_invoice_is_recomputed(self):
        invoice = make_invoice(
            self.admin, self.distributor, client=self.client_entity, total=1000, client_commission_rate=5,
        )

        response = self.client.patch(f"/api/invoices/{invoice.id}/", {"total": "3000"}, format="json")
        self.assertEqual(response.status_code, 200, response.data)

        invoice.refresh_from_db()
        self.assertEqual(invoice.total, 3000)
        self.assertEqual(invoice.client_commission_rate, 8)

    def test_partial_update_keeps_custom_rate(self):
        created = self.client.post(
            "/api/invoices/",
            {"invoiceCode": "CUSTOM-1", "client": self.client_entity.id, "total": 1000,
             "customClientCommissionRate": 10},
            format="json",
        )
        self.assertEqual(created.status_code, 201, created.data)

        response = self.client.patch(f"/api/invoices/{created.data['id']}/", {"status": "sent"}, format="json")
        self.assertEqual(response.status_code, 200, response.data)

        invoice = Invoice.objects.get(pk=created.data["id"])
        self.assertEqual(invoice.client_commission_rate, 10)
        self.assertEqual(invoice.custom_client_commission_rate, 10)
        self.assertEqual(invoice.status, "sent")

    def test_custom_rate_can_be_cleared(self):
        invoice = make_invoice(
            self.admin, self.distributor, client=self.client_entity, total=1000,
            client_commission_rate=10, custom_client_commission_rate=10,
        )

        response = self.client.patch(
            f"/api/invoices/{invoice.id}/", {"customClientCommissionRate": None}, format="json"
        )
        self.assertEqual(response.status_code, 200, response.data)

        invoice.refresh_from_db()
        self.assertEqual(invoice.client_commission_rate, 5)
        self.assertIsNone(invoice.custom_client_commission_rate)

    def test_renaming_to_existing_code_conflicts(self):
        make_invoice(self.admin, code="TAKEN")
        invoice = make_invoice(self.admin, code="FREE")

        response = self.client.patch(f"/api/invoices/{invoice.id}/", {"invoiceCode": "TAKEN"}, format="json")
        self.assertEqual(response.status_code, 409)
        invoice.refresh_from_db()
        self.assertEqual(invoice.invoice_code, "FREE")

    def test_out_of_scope_update_is_not_found(self):
        invoice = make_invoice(self.distributor_b, self.distributor_b, total=100)

        self.auth_as(self.distributor)
        response = self.client.patch(f"/api/invoices/{invoice.id}/", {"total": "1"}, format="json")
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.data["success"])

        invoice.refresh_from_db()
        self.assertEqual(invoice.total, 100)


class InvoiceVisibilityTests(APITestBase):
    def test_non_numeric_id_is_not_found(self):
        for method, url in (
            ("get", "/api/invoices/abc/"),
            ("patch", "/api/invoices/abc/"),
            ("delete", "/api/invoices/abc/"),
            ("post", "/api/invoices/abc/approve/"),
            ("post", "/api/invoices/abc/payment/clientToDistributor/"),
            ("delete", "/api/invoices/abc/payment/clientToDistributor/"),
        ):
            with self.subTest(method=method, url=url):
                response = getattr(self.client, method)(url, {}, format="json")
                self.assertEqual(response.status_code, 404)
                self.assertFalse(response.data["success"])

    def test_lookup_rejects_non_numeric_id(self):
        scope = AccessScope.for_user(self.admin)
        with self.assertRaises(NotFoundOrForbidden):
            get_visible_invoice(scope, "abc")
        with self.assertRaises(NotFoundOrForbidden):
            get_visible_invoice(scope, None)

    def test_distributor_sees_only_own_non_admin_invoices(self):
        own = make_invoice(self.distributor, self.distributor, code="OWN")
        make_invoice(self.admin, self.distributor, code="ADMIN-AUTHORED")
        make_invoice(self.distributor_b, self.distributor_b, code="OTHER")

        self.auth_as(self.distributor)
        response = self.client.get("/api/invoices/")
        self.assertEqual(response.status_code, 200)
        codes = [item["invoiceCode"] for item in self.results(response)]
        self.assertEqual(codes, ["OWN"])

        detail = self.client.get(f"/api/invoices/{own.id}/")
        self.assertEqual(detail.status_code, 200)

    def test_admin_sees_everything(self):
        make_invoice(self.distributor, self.distributor)
        make_invoice(self.admin, self.distributor_b)

        response = self.client.get("/api/invoices/")
        self.assertEqual(len(self.results(response)), 2)

    def test_filters(self):
        company = make_company()
        file = make_file(company=company)
        make_invoice(self.admin, self.distributor, file=file, code="WITH-FILE", is_approved=True)
        make_invoice(self.admin, self.distributor_b, code="PLAIN")

        by_company = self.results(self.client.get(f"/api/invoices/?company_id={company.id}"))
        self.assertEqual([item["invoiceCode"] for item in by_company], ["WITH-FILE"])

        by_search = self.results(self.client.get("/api/invoices/?search=plain"))
        self.assertEqual([item["invoiceCode"] for item in by_search], ["PLAIN"])

        approved = self.results(self.client.get("/api/invoices/?is_approved=false"))
        self.assertEqual([item["invoiceCode"] for item in approved], ["PLAIN"])

    def test_user_without_invoice_permissions_is_forbidden(self):
        bare = make_distributor(permissions=())
        self.auth_as(bare)
        response = self.client.get("/api/invoices/")
        self.assertEqual(response.status_code, 403)

    def test_detail_figures(self):
        invoice = make_invoice(
            self.admin, self.distributor, total=1000,
            client_commission_rate=5, distributor_commission_rate=3, company_commission_rate=2,
        )
        data = self.client.get(f"/api/invoices/{invoice.id}/").data

        self.assertEqual(data["clientCommission"], 50)
        self.assertEqual(data["distributorCommission"], 30)
        self.assertEqual(data["companyCommission"], 20)
        self.assertEqual(data["netProfit"], 900)
        self.assertEqual(data["paymentStatusDisplay"], "Pending")
        self.assertEqual(data["blockingStage"], "adminToCompany")
        self.assertEqual(data["progressPercent"], 0)


class InvoiceApprovalTests(APITestBase):
    def test_approve_then_unapprove(self):
        invoice = make_invoice(self.admin, self.distributor)

        response = self.client.post(f"/api/invoices/{invoice.id}/approve/")
        self.assertEqual(response.status_code, 200, response.data)
        self.assertTrue(response.data["data"]["isApproved"])
        self.assertEqual(response.data["data"]["approvedBy"], self.admin.id)

        again = self.client.post(f"/api/invoices/{invoice.id}/approve/")
        self.assertEqual(again.status_code, 409)

        response = self.client.post(f"/api/invoices/{invoice.id}/unapprove/")
        self.assertEqual(response.status_code, 200)
        invoice.refresh_from_db()
        self.assertFalse(invoice.is_approved)
        self.assertIsNone(invoice.approved_by)
        self.assertIsNone(invoice.approved_at)

    def test_unapprove_when_not_approved_conflicts(self):
        invoice = make_invoice(self.admin)
        response = self.client.post(f"/api/invoices/{invoice.id}/unapprove/")
        self.assertEqual(response.status_code, 409)

    def test_distributor_cannot_approve(self):
        invoice = make_invoice(self.distributor, self.distributor)
        self.auth_as(self.distributor)

        response = self.client.post(f"/api/invoices/{invoice.id}/approve/")
        self.assertEqual(response.status_code, 403)
        invoice.refresh_from_db()
        self.assertFalse(invoice.is_approved)


class InvoiceDeleteTests(APITestBase):
    def test_admin_deletes(self):
        invoice = make_invoice(self.admin)
        response = self.client.delete(f"/api/invoices/{invoice.id}/")
        self.assertEqual(response.status_code, 204)
        self.assertFalse(Invoice.objects.filter(pk=invoice.id).exists())

    def test_delete_requires_permission(self):
        invoice = make_invoice(self.distributor, self.distributor)
        self.auth_as(self.distributor)

        response = self.client.delete(f"/api/invoices/{invoice.id}/")
        self.assertEqual(response.status_code, 403)
        self.assertTrue(Invoice.objects.filter(pk=invoice.id).exists())

    def test_missing_invoice_is_not_found(self):
        response = self.client.delete("/api/invoices/999999/")
        self.assertEqual(response.status_code, 404)
