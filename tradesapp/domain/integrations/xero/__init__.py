"""Xero integration - OAuth token lifecycle, default contact/item sync,
customer/supplier reconciliation and quote creation"""
