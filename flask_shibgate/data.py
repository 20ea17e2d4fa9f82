# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

#: The key under which the last authentication failure is stored, both
#: on :data:`flask.g` and in the session.
AUTH_ERROR_KEY = '_shibgate_auth_error'


class AuthToken:
    """Stores the identity of a principal within the session.

    A token is either provisional (built from the asserted attributes
    and not trusted yet) or authenticated by a specific mechanism.  Only
    the authentication manager creates authenticated tokens, usually by
    calling :meth:`verified` on the provisional one it received.

    :param username: The asserted or verified username.
    :param attributes: A dict of identity attributes.
    :param provider_key: The key of the firewall which produced the token.
    :param mechanism: The authentication mechanism, e.g. ``shibboleth``.
    :param authenticated: Whether the token has been verified.
    :param roles: The roles granted by the authentication manager.
    """

    def __init__(self, username, attributes=None, provider_key=None, mechanism=None, authenticated=False,
                 roles=()):
        self.username = username
        self.attributes = dict(attributes or {})
        self.provider_key = provider_key
        self.mechanism = mechanism
        self.authenticated = authenticated
        self.roles = tuple(roles)

    @classmethod
    def provisional(cls, username, attributes, provider_key, mechanism):
        """Creates a token that has not been verified yet."""
        return cls(username, attributes, provider_key, mechanism)

    def verified(self, roles=(), attributes=None):
        """Returns an authenticated copy of this token.

        :param roles: The roles granted to the principal.
        :param attributes: Replaces the attributes if specified.
        """
        return type(self)(self.username, self.attributes if attributes is None else attributes,
                          self.provider_key, self.mechanism, authenticated=True, roles=roles)

    def is_authenticated_by(self, mechanism):
        """Checks if the token was authenticated using `mechanism`."""
        return self.authenticated and self.mechanism == mechanism

    def to_dict(self):
        return {'username': self.username,
                'attributes': self.attributes,
                'provider_key': self.provider_key,
                'mechanism': self.mechanism,
                'authenticated': self.authenticated,
                'roles': list(self.roles)}

    @classmethod
    def from_dict(cls, data):
        return cls(data['username'], data.get('attributes'), data.get('provider_key'), data.get('mechanism'),
                   authenticated=bool(data.get('authenticated')), roles=data.get('roles', ()))

    def __eq__(self, other):
        if not isinstance(other, AuthToken):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None

    def __repr__(self):
        state = f'authenticated by {self.mechanism}' if self.authenticated else 'provisional'
        return f'<AuthToken({self.username}, {self.provider_key}, {state})>'


class AuthenticationFailure:
    """Describes why an authentication attempt failed.

    :param kind: The name of the error type.
    :param message: The error message.
    """

    def __init__(self, kind, message):
        self.kind = kind
        self.message = message

    @classmethod
    def from_exception(cls, exc):
        return cls(type(exc).__name__, str(exc))

    def to_dict(self):
        return {'kind': self.kind, 'message': self.message}

    @classmethod
    def from_dict(cls, data):
        return cls(data['kind'], data['message'])

    def __eq__(self, other):
        if not isinstance(other, AuthenticationFailure):
            return NotImplemented
        return (self.kind, self.message) == (other.kind, other.message)

    __hash__ = None

    def __repr__(self):
        return f'<AuthenticationFailure({self.kind}, {self.message!r})>'
