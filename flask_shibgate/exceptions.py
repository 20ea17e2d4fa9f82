# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

class ShibgateException(Exception):
    """Base class for Shibgate exceptions."""

    def __init__(self, message=None, details=None, provider=None):
        args = (message,) if message else ()
        Exception.__init__(self, *args)
        self.details = details
        self.provider = provider


class AuthenticationFailed(ShibgateException):
    """
    Indicates that the authentication manager rejected an identity,
    e.g. because of an attribute policy mismatch or a disabled account.
    """


class NoSuchUser(AuthenticationFailed):
    """Indicates the asserted user is not known to the authentication manager."""

    def __init__(self, message='No such user', *, details=None, provider=None, identifier=None):
        AuthenticationFailed.__init__(self, message, details=details, provider=provider)
        self.identifier = identifier


class ConfigurationError(ShibgateException):
    """Indicates a missing or invalid setting, raised while initializing."""
