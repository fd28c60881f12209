"""notify/ -- Outbound account notifications (welcome mail, reset codes).

Layer rule: notify/ imports only stdlib and auth/models.py. The auth flows
hand it finished Notification messages through the Notifier interface and
never wait on delivery.
"""
