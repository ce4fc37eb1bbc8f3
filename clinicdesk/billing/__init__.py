"""Billing: plan catalog, Stripe gateway, event types and reconciliation.

Import submodules directly (clinicdesk.billing.reconciler depends on
clinicdesk.provisioning, which itself imports from this package).
"""
