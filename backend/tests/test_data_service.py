import unittest

from fireforce.services.auth_service import FixedAccount
from fireforce.services.data_service import (
    DataService,
    NotFoundError,
    PersistenceError,
    ProtectedRecordError,
)
from fireforce.store import CUSTOMERS, INVOICE_ITEMS, INVOICES, LocalRecordStore
from fireforce.validation import ConflictError, ValidationError

from helpers import OFFICE_INFO, FakeClock, FlakyLocalStore, UnreachableStore, hash_for_tests


FIXED = [
    FixedAccount(id="office1", username="ffoffice1", name="Office Administrator", role="office", is_admin=False, password_hash=None),
    FixedAccount(id="it_admin", username="itadmin", name="IT Administrator", role="office", is_admin=True, password_hash=None),
]


def make_service(primary=None, local=None, clock=None):
    local = local if local is not None else LocalRecordStore()
    return DataService(
        primary if primary is not None else local,
        local,
        clock=clock or FakeClock(),
        default_tax_rate=8.0,
        office_info=OFFICE_INFO,
        fixed_accounts=FIXED,
        password_hasher=hash_for_tests,
    )


class InvoiceTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.store = LocalRecordStore()
        self.data = make_service(clock=self.clock, local=self.store)
        self.data.load_all_data()

    def test_add_invoice_computes_totals_and_defaults(self):
        invoice = self.data.add_invoice({
            "customerName": "Acme",
            "shippingCost": 5,
            "items": [{"qty": 2, "unitPrice": 10, "taxable": True}],
        })
        self.assertEqual(invoice["subtotal"], 20.0)
        self.assertEqual(invoice["tax"], 1.6)
        self.assertEqual(invoice["grandTotal"], 26.6)
        self.assertEqual(invoice["taxRate"], 8.0)
        self.assertEqual(invoice["transactionType"], "Sales Order")
        self.assertEqual(invoice["status"], "pending")
        self.assertEqual(invoice["date"], "2026-10-19")
        self.assertFalse(invoice["archived"])
        self.assertEqual(invoice["createdAt"], invoice["updatedAt"])

        # Header and items are separate kinds in the store
        self.assertEqual(len(self.store.load_all(INVOICES)), 1)
        self.assertEqual(self.store.load_all(INVOICE_ITEMS)[0]["invoiceId"], invoice["id"])

    def test_client_totals_are_ignored(self):
        invoice = self.data.add_invoice({
            "customerName": "Acme",
            "grandTotal": 999,
            "items": [{"qty": 1, "unitPrice": 10}],
        })
        self.assertEqual(invoice["grandTotal"], 10.8)

    def test_invalid_payload_rejected(self):
        with self.assertRaises(ValidationError):
            self.data.add_invoice({"transactionType": "Refund"})
        with self.assertRaises(ValidationError):
            self.data.add_invoice({"items": [{"qty": 1.5, "unitPrice": 10}]})
        with self.assertRaises(ValidationError):
            self.data.add_invoice({"taxRate": 120})

    def test_update_replaces_items_and_recomputes(self):
        invoice = self.data.add_invoice({"items": [{"qty": 1, "unitPrice": 10}, {"qty": 1, "unitPrice": 5}]})
        self.clock.advance(minutes=5)
        updated = self.data.update_invoice(invoice["id"], {
            "items": [{"description": "only", "qty": 3, "unitPrice": 10, "taxable": False}],
        })
        self.assertEqual(updated["subtotal"], 30.0)
        self.assertEqual(updated["tax"], 0.0)
        self.assertNotEqual(updated["updatedAt"], updated["createdAt"])
        rows = self.store.load_all(INVOICE_ITEMS)
        self.assertEqual([r["description"] for r in rows], ["only"])

    def test_shipping_change_recomputes(self):
        invoice = self.data.add_invoice({"items": [{"qty": 2, "unitPrice": 10}]})
        updated = self.data.update_invoice(invoice["id"], {"shippingCost": 5})
        self.assertEqual(updated["grandTotal"], 26.6)
        self.assertEqual(len(updated["items"]), 1)

    def test_items_survive_reload_in_order(self):
        invoice = self.data.add_invoice({"items": [
            {"description": "a", "qty": 1, "unitPrice": 1},
            {"description": "b", "qty": 1, "unitPrice": 1},
            {"description": "c", "qty": 1, "unitPrice": 1},
        ]})
        self.data.load_all_data()
        reloaded = self.data.get_invoice(invoice["id"])
        self.assertEqual([i["description"] for i in reloaded["items"]], ["a", "b", "c"])

    def test_delete_invoice_removes_items(self):
        invoice = self.data.add_invoice({"items": [{"qty": 1, "unitPrice": 1}]})
        self.data.delete_invoice(invoice["id"])
        self.assertEqual(self.store.load_all(INVOICES), [])
        self.assertEqual(self.store.load_all(INVOICE_ITEMS), [])
        with self.assertRaises(NotFoundError):
            self.data.get_invoice(invoice["id"])

    def test_archive_toggle_and_list_filters(self):
        first = self.data.add_invoice({"salesRep": "John", "customerName": "Acme"})
        self.data.add_invoice({"salesRep": "Mary", "customerName": "Beta Supply"})
        self.data.toggle_archive(first["id"])

        self.assertEqual(len(self.data.list_invoices(archived="active")), 1)
        self.assertEqual(len(self.data.list_invoices(archived="archived")), 1)
        self.assertEqual(len(self.data.list_invoices(sales_rep="Mary")), 1)
        self.assertEqual(len(self.data.list_invoices(q="beta")), 1)

    def test_settings_tax_rate_applies_to_new_invoices_only(self):
        old = self.data.add_invoice({"items": [{"qty": 1, "unitPrice": 100}]})
        self.data.update_settings({"taxRate": 6.5})
        new = self.data.add_invoice({"items": [{"qty": 1, "unitPrice": 100}]})

        self.assertEqual(new["taxRate"], 6.5)
        self.assertEqual(new["tax"], 6.5)
        self.assertEqual(self.data.get_invoice(old["id"])["taxRate"], 8.0)

        self.data.load_all_data()
        self.assertEqual(self.data.settings["taxRate"], 6.5)

    def test_item_failure_after_header_is_persistence_error(self):
        store = FlakyLocalStore(fail_inserts={INVOICE_ITEMS})
        data = make_service(local=store)
        data.load_all_data()
        with self.assertRaises(PersistenceError) as ctx:
            data.add_invoice({"items": [{"qty": 1, "unitPrice": 1}]})
        self.assertIsNotNone(ctx.exception.store_error)
        self.assertEqual(len(store.load_all(INVOICES)), 1)


class CustomerTests(unittest.TestCase):
    def setUp(self):
        self.data = make_service()
        self.data.load_all_data()

    def test_name_required(self):
        with self.assertRaises(ValidationError):
            self.data.add_customer({"email": "a@b.com"})

    def test_deleting_customer_keeps_invoice_copy(self):
        customer = self.data.add_customer({
            "name": "Acme Fire",
            "email": "ap@acme.com",
            "billToAddress": "1 Main St",
        })
        invoice = self.data.add_invoice({
            "customerName": customer["name"],
            "customerEmail": customer["email"],
            "billToAddress": customer["billToAddress"],
        })
        self.data.update_customer(customer["id"], {"name": "Renamed"})
        self.data.delete_customer(customer["id"])

        kept = self.data.get_invoice(invoice["id"])
        self.assertEqual(kept["customerName"], "Acme Fire")
        self.assertEqual(kept["customerEmail"], "ap@acme.com")
        self.assertEqual(kept["billToAddress"], "1 Main St")

    def test_search(self):
        self.data.add_customer({"name": "Acme"})
        self.data.add_customer({"name": "Beta", "phone": "330-555-0100"})
        self.assertEqual([c["name"] for c in self.data.search_customers("555")], ["Beta"])
        self.assertEqual(len(self.data.search_customers()), 2)


class UserTests(unittest.TestCase):
    def setUp(self):
        self.store = LocalRecordStore()
        self.data = make_service(local=self.store)
        self.data.load_all_data()

    def test_add_hashes_password(self):
        user = self.data.add_user({"username": "jsmith", "name": "John Smith", "password": "secret1"})
        self.assertEqual(user["role"], "salesman")
        self.assertEqual(user["passwordHash"], "hashed:secret1")
        self.assertNotIn("password", self.store.load_all("users")[0])

    def test_username_unique_against_fixed_accounts(self):
        with self.assertRaises(ConflictError):
            self.data.add_user({"username": "ffoffice1", "name": "Impostor", "password": "secret1"})

    def test_username_unique_among_salesmen(self):
        self.data.add_user({"username": "jsmith", "name": "John", "password": "secret1"})
        with self.assertRaises(ConflictError):
            self.data.add_user({"username": "jsmith", "name": "Jane", "password": "secret2"})

    def test_empty_password_means_no_change(self):
        user = self.data.add_user({"username": "jsmith", "name": "John", "password": "secret1"})
        updated = self.data.update_user(user["id"], {"name": "John S.", "password": ""})
        self.assertEqual(updated["passwordHash"], "hashed:secret1")
        changed = self.data.update_user(user["id"], {"password": "newpass1"})
        self.assertEqual(changed["passwordHash"], "hashed:newpass1")

    def test_short_password_rejected(self):
        with self.assertRaises(ValidationError):
            self.data.add_user({"username": "x", "name": "X", "password": "123"})

    def test_fixed_accounts_are_protected(self):
        with self.assertRaises(ProtectedRecordError):
            self.data.update_user("office1", {"name": "Hacked"})
        with self.assertRaises(ProtectedRecordError):
            self.data.delete_user("it_admin")


class LoadFallbackTests(unittest.TestCase):
    def test_remote_failure_falls_back_to_local(self):
        local = LocalRecordStore()
        local.insert(CUSTOMERS, {"id": "c1", "name": "Cached Customer"})
        data = make_service(primary=UnreachableStore(), local=local)

        with self.assertLogs("fireforce.services.data_service", level="WARNING"):
            data.load_all_data()

        self.assertTrue(data.degraded)
        self.assertIs(data.store, local)
        self.assertEqual([c["name"] for c in data.customers], ["Cached Customer"])

        # Writes go to the local store while degraded
        data.add_customer({"name": "Offline Entry"})
        self.assertEqual(len(local.load_all(CUSTOMERS)), 2)

    def test_both_stores_failing_raises(self):
        data = DataService(UnreachableStore(), UnreachableStore(), clock=FakeClock())
        with self.assertRaises(PersistenceError):
            data.load_all_data()
        self.assertFalse(data.loaded)

    def test_store_failure_on_write_is_persistence_error(self):
        data = make_service(primary=UnreachableStore(), local=LocalRecordStore())
        data.loaded = True
        with self.assertRaises(PersistenceError):
            data.add_customer({"name": "Acme"})


if __name__ == "__main__":
    unittest.main()
