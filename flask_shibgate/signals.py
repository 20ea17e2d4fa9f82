# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

from blinker import Namespace


_signals = Namespace()

#: Sent after a fresh login, i.e. when a verified token has just been
#: bound to the session.  Requests arriving with an already valid
#: session do not trigger it.  The sender is the Flask application and
#: the ``event`` kwarg is an :class:`InteractiveLoginEvent`.
interactive_login = _signals.signal('interactive-login', doc='Called after a new interactive login')


class InteractiveLoginEvent:
    """Payload of the :data:`interactive_login` signal.

    :param request: The request which triggered the login.
    :param token: The verified :class:`.AuthToken`.
    """

    def __init__(self, request, token):
        self.request = request
        self.token = token

    def __repr__(self):
        return f'<InteractiveLoginEvent({self.token!r})>'
