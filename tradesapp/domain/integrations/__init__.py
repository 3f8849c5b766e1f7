"""Third-party accounting integrations"""
