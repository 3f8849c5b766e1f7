"""Supplier domain"""
