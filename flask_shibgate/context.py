# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

import logging

from flask import session

from flask_shibgate.data import AuthToken


class SessionTokenStorage:
    """Holds the current :class:`.AuthToken` in the Flask session.

    :param key: The session key used to store the token.
    """

    def __init__(self, key='_shibgate_token'):
        self.key = key

    def get_token(self):
        data = session.get(self.key)
        if data is None:
            return None
        try:
            return AuthToken.from_dict(data)
        except (KeyError, TypeError, ValueError):
            logging.getLogger('shibgate.context').warning('Discarding malformed token in session: %r', data)
            session.pop(self.key, None)
            return None

    def set_token(self, token):
        if token is None:
            session.pop(self.key, None)
        else:
            session[self.key] = token.to_dict()

    def __repr__(self):
        return f'<SessionTokenStorage({self.key})>'
