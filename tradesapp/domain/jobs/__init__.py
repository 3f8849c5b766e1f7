"""Job domain"""
