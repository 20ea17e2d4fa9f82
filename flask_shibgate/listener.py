# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

import logging
from enum import Enum

from flask import current_app, flash, g, redirect, session, url_for
from werkzeug.wrappers import Response

from flask_shibgate.data import AUTH_ERROR_KEY, AuthenticationFailure, AuthToken
from flask_shibgate.exceptions import AuthenticationFailed, ConfigurationError
from flask_shibgate.signals import InteractiveLoginEvent
from flask_shibgate.util import check_request_path


class Reconciliation(Enum):
    #: The session is already authenticated for the asserted user
    skip = 'skip'
    #: Another mechanism authenticated the session
    skip_foreign = 'skip_foreign'
    #: The identity needs to be (re-)authenticated
    proceed = 'proceed'


def reconcile_token(token, mechanism, username):
    """Compares the session's token with a freshly asserted identity.

    :param token: The :class:`.AuthToken` bound to the session or ``None``.
    :param mechanism: The mechanism asserting the identity.
    :param username: The asserted username.
    :return: A :class:`Reconciliation` member.
    """
    if token is None or not token.authenticated:
        return Reconciliation.proceed
    elif not token.is_authenticated_by(mechanism):
        return Reconciliation.skip_foreign
    elif token.username == username:
        return Reconciliation.skip
    # the identity provider session changed
    return Reconciliation.proceed


class AuthenticationListener:
    """Provides the base for a firewall listener.

    The listener runs before each request.  Subclasses decide whether a
    request needs to be authenticated and how to authenticate it; the
    base class binds the resulting token to the session, notifies
    about new logins and records failures.

    :param provider_key: The key of the firewall, stored in the tokens.
    :param token_storage: The :class:`.SessionTokenStorage` holding the
                          current token.
    :param authentication_manager: The :class:`.AuthenticationManager`
                                   verifying provisional tokens.
    :param settings: A dict with additional settings.
    :param enable_logging: Whether the listener should log.
    :param notifier: A blinker signal sent after a fresh login, or
                     ``None`` to not send any notification.
    """

    #: The mechanism tag of the tokens this listener creates
    mechanism = None

    def __init__(self, provider_key, token_storage, authentication_manager, settings=None, enable_logging=True,
                 notifier=None):
        if not provider_key:
            raise ConfigurationError('provider_key must not be empty')
        if token_storage is None:
            raise ConfigurationError('Token storage missing')
        if authentication_manager is None:
            raise ConfigurationError('Authentication manager missing')
        self.provider_key = provider_key
        self.token_storage = token_storage
        self.authentication_manager = authentication_manager
        self.settings = dict(settings or {})
        self.success_endpoint = self.settings.setdefault('success_endpoint', None)
        self.failure_endpoint = self.settings.setdefault('failure_endpoint', None)
        self.flash_failures = self.settings.setdefault('flash_failures', False)
        self.failure_message = self.settings.setdefault('failure_message', 'Authentication failed: {error}')
        self.failure_category = self.settings.setdefault('failure_category', 'error')
        self.notifier = notifier
        self.logger = logging.getLogger(f'shibgate.{self.mechanism}') if enable_logging else None

    def _log(self, level, msg, *args):
        if self.logger is not None:
            self.logger.log(level, msg, *args)

    def requires_authentication(self, request):  # pragma: no cover
        """Checks whether the request needs to be authenticated."""
        raise NotImplementedError

    def attempt_authentication(self, request):  # pragma: no cover
        """Performs the authentication.

        :return: An authenticated :class:`.AuthToken`, a response
                 (usually a redirect) or ``None`` if authentication is
                 not possible.
        :raise AuthenticationFailed: if the authentication failed
        """
        raise NotImplementedError

    def entry_point(self, request):
        """Called for requests which do not require authentication.

        It may return a response to start the authentication process.
        It must not change the session.
        """
        return None

    def handle(self, request):
        """Handles a request before it reaches the application.

        :return: ``None`` to let the request continue or a Flask
                 response which replaces the application's response.
        """
        if not self.requires_authentication(request):
            return self.entry_point(request)
        try:
            result = self.attempt_authentication(request)
            if result is None:
                return None
            elif isinstance(result, Response):
                return result
            elif not isinstance(result, AuthToken):
                raise AuthenticationFailed('Authentication manager returned an invalid result')
            elif not result.authenticated:
                raise AuthenticationFailed('Authentication manager returned an unauthenticated token')
        except AuthenticationFailed as exc:
            return self._handle_failure(request, exc)
        return self._handle_success(request, result)

    def _handle_success(self, request, token):
        self._log(logging.INFO, 'User %s has been authenticated successfully', token.username)
        self.token_storage.set_token(token)
        session.pop(AUTH_ERROR_KEY, None)
        if self.notifier is not None:
            self.notifier.send(current_app._get_current_object(), event=InteractiveLoginEvent(request, token))
        if self.success_endpoint:
            return redirect(url_for(self.success_endpoint))

    def _handle_failure(self, request, exc):
        self._log(logging.INFO, 'Authentication request failed: %s', exc)
        self.token_storage.set_token(None)
        failure = AuthenticationFailure.from_exception(exc)
        setattr(g, AUTH_ERROR_KEY, failure)
        session[AUTH_ERROR_KEY] = failure.to_dict()
        if self.flash_failures:
            flash(self.failure_message.format(error=failure.message), self.failure_category)
        if self.failure_endpoint:
            return redirect(url_for(self.failure_endpoint))

    def __repr__(self):
        return f'<{type(self).__name__}({self.provider_key})>'


class ShibbolethListener(AuthenticationListener):
    """Authenticates users asserted by a Shibboleth SP.

    Settings:

    - ``check_path``: the path (or endpoint name) on which the listener
      is active
    - ``redirect_unauthenticated``: redirect requests to the check path
      to the Shibboleth login if no user has been asserted yet

    :param attribute_source: The :class:`.AttributeSource` reading the
                             asserted identity.
    """

    mechanism = 'shibboleth'

    def __init__(self, *args, attribute_source=None, **kwargs):
        if attribute_source is None:
            raise ConfigurationError('Shibboleth attribute source missing')
        super().__init__(*args, **kwargs)
        self.attribute_source = attribute_source
        self.check_path = self.settings.setdefault('check_path', '/login/shibboleth')
        self.redirect_unauthenticated = self.settings.setdefault('redirect_unauthenticated', True)
        if not self.check_path:
            raise ConfigurationError('check_path must not be empty')

    def requires_authentication(self, request):
        if not self.attribute_source.is_authenticated(request):
            return False
        if not check_request_path(request, self.check_path):
            return False
        username = self.attribute_source.get_user(request)
        decision = reconcile_token(self.token_storage.get_token(), self.mechanism, username)
        if decision is not Reconciliation.proceed:
            self._log(logging.DEBUG, 'Not authenticating %s again (%s)', username, decision.value)
        return decision is Reconciliation.proceed

    def entry_point(self, request):
        if not self.redirect_unauthenticated or not check_request_path(request, self.check_path):
            return None
        if self.attribute_source.is_authenticated(request):
            return None
        return redirect(self.attribute_source.get_login_url(request))

    def attempt_authentication(self, request):
        if not self.attribute_source.is_authenticated(request):
            return redirect(self.attribute_source.get_login_url(request))
        username = self.attribute_source.get_user(request)
        if not username:
            raise AuthenticationFailed('No username received from Shibboleth', provider=self)
        attributes = self.attribute_source.get_attributes(request)
        self._log(logging.DEBUG, 'Shibboleth returned attributes from: %s', attributes.get('identityProvider', ''))
        token = AuthToken.provisional(username, attributes, self.provider_key, self.mechanism)
        return self.authentication_manager.authenticate(token)
