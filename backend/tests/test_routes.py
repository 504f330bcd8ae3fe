# Overview: Pytest coverage for the HTTP API (auth, drafts, finalize, invoices, payments, inventory).

from bazar.models import Product


class TestAuth:
    def test_missing_token(self, client, db_session):
        response = client.get('/api/drafts')
        assert response.status_code == 401

    def test_bad_token(self, client, db_session, user):
        response = client.get('/api/drafts', headers={'Authorization': 'Bearer nope'})
        assert response.status_code == 401

    def test_health_is_public(self, client, db_session):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.json['database']['status'] == 'healthy'


class TestDraftRoutes:
    def test_create_get_list(self, client, headers, product):
        response = client.post('/api/drafts', headers=headers, json={
            'type': 'MUFRAD',
            'items': [{'product_id': product.id, 'quantity': 2, 'unit_price': 100}],
        })
        assert response.status_code == 201
        draft = response.json['draft']
        assert draft['type'] == 'RETAIL'
        assert draft['total'] == 200.0

        response = client.get(f"/api/drafts/{draft['id']}", headers=headers)
        assert response.status_code == 200
        assert len(response.json['draft']['items']) == 1

        response = client.get('/api/drafts?status=CREATED', headers=headers)
        assert [d['id'] for d in response.json['drafts']] == [draft['id']]

    def test_validation_error_is_400(self, client, headers):
        response = client.post('/api/drafts', headers=headers, json={'type': 'WHOLESALE'})
        assert response.status_code == 400
        assert 'Customer is required' in response.json['error']

    def test_missing_draft_is_404(self, client, headers):
        response = client.get('/api/drafts/999', headers=headers)
        assert response.status_code == 404

    def test_non_owner_update_is_403(self, client, other_headers, make_draft):
        draft = make_draft([])
        response = client.put(f'/api/drafts/{draft.id}', headers=other_headers, json={'notes': 'mine now'})
        assert response.status_code == 403

    def test_status_and_cancel(self, client, headers, make_draft):
        draft = make_draft([])

        response = client.patch(f'/api/drafts/{draft.id}/status', headers=headers, json={'status': 'READY'})
        assert response.status_code == 200
        assert response.json['draft']['status'] == 'READY'

        response = client.delete(f'/api/drafts/{draft.id}', headers=headers)
        assert response.status_code == 200
        assert response.json['draft']['status'] == 'CANCELLED'


class TestFinalizeRoute:
    def test_finalize_success(self, client, headers, product, make_draft, db_session):
        draft = make_draft([{'product_id': product.id, 'quantity': 3, 'unit_price': 100}])

        response = client.post(f'/api/drafts/{draft.id}/finalize', headers=headers, json={
            'paymentMethod': 'CASH',
            'amountPaid': 300,
            'invoiceNumber': 'INV-2026-001',
        })

        assert response.status_code == 200
        body = response.json
        assert body['success'] is True
        assert body['invoiceNumber'] == 'INV-2026-001'
        assert db_session.get(Product, product.id).stock_quantity == 7

        invoice = client.get(f"/api/invoices/{body['invoiceId']}", headers=headers).json['invoice']
        assert invoice['status'] == 'PAID'
        assert invoice['sale_id'] == body['saleId']
        assert len(invoice['items']) == 1

    def test_finalize_without_body(self, client, headers, product, make_draft):
        draft = make_draft([{'product_id': product.id, 'quantity': 1, 'unit_price': 100}])

        response = client.post(f'/api/drafts/{draft.id}/finalize', headers=headers)

        assert response.status_code == 200
        assert response.json['invoiceNumber'].startswith('INVOICE-')

    def test_insufficient_stock_is_400(self, client, headers, scarce_product, make_draft):
        draft = make_draft([{'product_id': scarce_product.id, 'quantity': 5, 'unit_price': 50}])

        response = client.post(f'/api/drafts/{draft.id}/finalize', headers=headers, json={})

        assert response.status_code == 400
        assert response.json['error'] == 'Insufficient stock for product. Available: 2, Requested: 5'
        assert response.json['details']['available'] == 2

    def test_missing_draft_is_404(self, client, headers):
        response = client.post('/api/drafts/999/finalize', headers=headers, json={})
        assert response.status_code == 404

    def test_duplicate_invoice_number_is_409(self, client, headers, product, make_draft):
        first = make_draft([{'product_id': product.id, 'quantity': 1, 'unit_price': 100}])
        second = make_draft([{'product_id': product.id, 'quantity': 1, 'unit_price': 100}])
        client.post(f'/api/drafts/{first.id}/finalize', headers=headers, json={'invoiceNumber': 'DUP-1'})

        response = client.post(f'/api/drafts/{second.id}/finalize', headers=headers, json={'invoiceNumber': 'DUP-1'})

        assert response.status_code == 409

    def test_bad_amount_is_400(self, client, headers, product, make_draft):
        draft = make_draft([{'product_id': product.id, 'quantity': 1, 'unit_price': 100}])

        response = client.post(f'/api/drafts/{draft.id}/finalize', headers=headers, json={'amountPaid': 'lots'})

        assert response.status_code == 400

    def test_bad_currency_is_400(self, client, headers, product, make_draft):
        draft = make_draft([{'product_id': product.id, 'quantity': 1, 'unit_price': 100}])

        response = client.post(f'/api/drafts/{draft.id}/finalize', headers=headers, json={'currency': 'EUR'})

        assert response.status_code == 400


class TestCustomerRoutes:
    def test_payment_and_balance(self, client, headers, customer):
        response = client.post(f'/api/customers/{customer.id}/payments', headers=headers, json={
            'amountIqd': 150,
            'paymentMethod': 'CASH',
        })
        assert response.status_code == 201
        assert response.json['customer']['debt_iqd'] == 350.0

        response = client.get(f'/api/customers/{customer.id}/balance', headers=headers)
        assert response.status_code == 200
        assert response.json['customer']['current_balance'] == 350.0
        assert response.json['history'][0]['type'] == 'payment'

        response = client.get(f'/api/customers/{customer.id}/payments', headers=headers)
        assert len(response.json['payments']) == 1

    def test_overpaid_sale_not_listed_as_payment(self, client, headers, product, customer, make_draft):
        draft = make_draft([{'product_id': product.id, 'quantity': 2, 'unit_price': 100}], customer_id=customer.id)
        client.post(f'/api/drafts/{draft.id}/finalize', headers=headers, json={'amountPaid': 300})

        response = client.get(f'/api/customers/{customer.id}/payments', headers=headers)

        assert response.status_code == 200
        assert response.json['payments'] == []
        history = client.get(f'/api/customers/{customer.id}/balance', headers=headers).json['history']
        assert [(h['type'], h['amount']) for h in history] == [('invoice', -100.0)]

    def test_customer_invoices(self, client, headers, product, customer, make_draft):
        draft = make_draft([{'product_id': product.id, 'quantity': 1, 'unit_price': 100}], customer_id=customer.id)
        invoice_id = client.post(f'/api/drafts/{draft.id}/finalize', headers=headers, json={}).json['invoiceId']

        response = client.get(f'/api/customers/{customer.id}/invoices', headers=headers)

        assert response.status_code == 200
        assert [i['id'] for i in response.json['invoices']] == [invoice_id]
        assert 'items' not in response.json['invoices'][0]

    def test_overpayment_is_400(self, client, headers, customer):
        response = client.post(f'/api/customers/{customer.id}/payments', headers=headers, json={'amountIqd': 501})
        assert response.status_code == 400

    def test_unknown_customer_is_404(self, client, headers):
        response = client.get('/api/customers/404/balance', headers=headers)
        assert response.status_code == 404


class TestInventoryRoutes:
    def test_adjust_and_movements(self, client, headers, product):
        response = client.post('/api/inventory/adjust', headers=headers, json={
            'entity_type': 'product',
            'entity_id': product.id,
            'quantity_delta': 4,
            'reason': 'Recount',
        })
        assert response.status_code == 200
        assert response.json['stock_quantity'] == 14

        response = client.get(f'/api/inventory/products/{product.id}/movements', headers=headers)
        assert response.json['movements'][0]['balance_after'] == 14

    def test_activities_query(self, client, headers, product, make_draft):
        draft = make_draft([{'product_id': product.id, 'quantity': 1, 'unit_price': 100}])
        client.post(f'/api/drafts/{draft.id}/finalize', headers=headers, json={})

        response = client.get(f'/api/activities?entity_type=PRODUCT&entity_id={product.id}', headers=headers)

        assert response.status_code == 200
        assert sorted(a['type'] for a in response.json['activities']) == ['INVOICED', 'STOCK_REDUCED']

    def test_activities_bad_entity_type(self, client, headers):
        response = client.get('/api/activities?entity_type=CAR', headers=headers)
        assert response.status_code == 400


class TestInvoiceRoutes:
    def _finalize(self, client, headers, make_draft, product, quantity=3):
        draft = make_draft([{'product_id': product.id, 'quantity': quantity, 'unit_price': 100}])
        return client.post(f'/api/drafts/{draft.id}/finalize', headers=headers, json={}).json['invoiceId']

    def test_list_and_filter(self, client, headers, product, make_draft):
        invoice_id = self._finalize(client, headers, make_draft, product)

        response = client.get('/api/invoices?status=PARTIALLY_PAID', headers=headers)
        assert response.status_code == 200
        assert [i['id'] for i in response.json['invoices']] == [invoice_id]

        response = client.get('/api/invoices?status=PAID', headers=headers)
        assert response.json['invoices'] == []

    def test_list_bad_status_is_400(self, client, headers):
        response = client.get('/api/invoices?status=LOST', headers=headers)
        assert response.status_code == 400

    def test_edit(self, client, headers, product, make_draft):
        invoice_id = self._finalize(client, headers, make_draft, product)

        response = client.put(f'/api/invoices/{invoice_id}', headers=headers, json={
            'items': [{'product_id': product.id, 'quantity': 2, 'unit_price': 100}],
            'amount_paid': 200,
        })

        assert response.status_code == 200
        invoice = response.json['invoice']
        assert invoice['total'] == 200.0
        assert invoice['status'] == 'PAID'
        assert [i['quantity'] for i in invoice['items']] == [2]

        movements = client.get(f'/api/inventory/products/{product.id}/movements', headers=headers).json['movements']
        assert movements[0]['balance_after'] == 8

    def test_edit_insufficient_stock_is_400(self, client, headers, product, make_draft):
        invoice_id = self._finalize(client, headers, make_draft, product)

        response = client.put(f'/api/invoices/{invoice_id}', headers=headers, json={
            'items': [{'product_id': product.id, 'quantity': 50, 'unit_price': 100}],
        })

        assert response.status_code == 400
        assert response.json['details']['available'] == 10

    def test_cancel_then_edit_is_400(self, client, headers, product, make_draft):
        invoice_id = self._finalize(client, headers, make_draft, product)

        response = client.post(f'/api/invoices/{invoice_id}/cancel', headers=headers, json={'reason': 'Wrong customer'})
        assert response.status_code == 200
        assert response.json['invoice']['status'] == 'CANCELLED'

        response = client.put(f'/api/invoices/{invoice_id}', headers=headers, json={
            'items': [{'product_id': product.id, 'quantity': 1, 'unit_price': 100}],
        })
        assert response.status_code == 400

    def test_missing_invoice_is_404(self, client, headers):
        assert client.get('/api/invoices/999', headers=headers).status_code == 404
        assert client.post('/api/invoices/999/cancel', headers=headers, json={}).status_code == 404

    def test_requires_auth(self, client, db_session):
        assert client.get('/api/invoices').status_code == 401
