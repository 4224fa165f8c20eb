# app/notifications.py
"""User-facing notifications.

Every message goes to the log.  Inside a request it is also collected on
``flask.g`` so the JSON response can hand it back to the client; outside a
request (CLI, background work) the log is all there is.  Callers never wait
on or inspect the outcome.
"""

import logging

from flask import g, has_request_context

SUCCESS = 'success'
ERROR = 'error'


def notify(kind: str, title: str, message: str) -> None:
    level = logging.ERROR if kind == ERROR else logging.INFO
    logging.log(level, "notify [%s] %s: %s", kind, title, message)
    if has_request_context():
        g.setdefault('notifications', []).append(
            {'kind': kind, 'title': title, 'message': message}
        )


def collected():
    """Notifications raised so far in the current request."""
    if not has_request_context():
        return []
    return list(g.get('notifications', []))
