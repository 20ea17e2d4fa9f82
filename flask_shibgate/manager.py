# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

from flask_shibgate.exceptions import AuthenticationFailed, NoSuchUser


class AuthenticationManager:
    """Provides the base for verifying provisional tokens.

    :param shibgate: The Flask-Shibgate instance
    :param settings: The settings dictionary for this manager
    """

    #: The entry point to lookup managers (do not override this!)
    _entry_point = 'flask_shibgate.authentication_managers'

    def __init__(self, shibgate, settings):
        self.shibgate = shibgate
        self.settings = settings.copy()

    def authenticate(self, token):  # pragma: no cover
        """Verifies a provisional token.

        :param token: A provisional :class:`.AuthToken` built from the
                      asserted identity.
        :return: An authenticated :class:`.AuthToken`, usually created
                 using :meth:`.AuthToken.verified`.
        :raise AuthenticationFailed: if the identity is not accepted
        """
        raise NotImplementedError

    def __repr__(self):
        return f'<{type(self).__name__}()>'


class CallbackAuthenticationManager(AuthenticationManager):
    """Verifies tokens using the application's authentication handler.

    The callback registered via :meth:`.Shibgate.authentication_handler`
    receives the provisional token.  It returns the verified token, or
    ``None`` to reject the identity, and may also raise
    :exc:`.AuthenticationFailed` itself.
    """

    def __init__(self, shibgate, settings, callback):
        super().__init__(shibgate, settings)
        self.callback = callback

    def authenticate(self, token):
        verified_token = self.callback(token)
        if verified_token is None:
            raise AuthenticationFailed('Identity rejected', provider=self)
        return verified_token


class StaticAuthenticationManager(AuthenticationManager):
    """Verifies tokens against a static list of users.

    This manager should NEVER be used in any production system.
    It serves mainly as a simple dummy/example for development.

    The ``users`` setting maps usernames to a dict which may contain
    ``roles`` and ``attributes``.  The latter lists attribute values
    the asserted identity must have, e.g. a specific identity provider.

    The type name to instantiate this manager is *static*.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.settings.setdefault('users', {})

    def authenticate(self, token):
        user = self.settings['users'].get(token.username)
        if user is None:
            raise NoSuchUser(provider=self, identifier=token.username)
        for key, value in user.get('attributes', {}).items():
            if token.attributes.get(key) != value:
                raise AuthenticationFailed('attribute policy violation', details={'attribute': key},
                                           provider=self)
        return token.verified(roles=user.get('roles', ()))
