"""auth/ -- Credential and token lifecycle engine for CredGate.

Layer rule: auth/ imports only stdlib, third-party libraries, core/config.py
and the Notifier interface in notify/. It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
