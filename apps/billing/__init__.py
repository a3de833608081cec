"""
Billing app for the bookshop point of sale.

Creates, previews, retrieves and deletes invoices while keeping book stock
and invoice numbering consistent under concurrent cashiers.
"""
