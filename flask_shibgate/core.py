# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

from functools import wraps
from urllib.parse import urlsplit

from flask import current_app, g, redirect, request, session, url_for
from werkzeug.exceptions import Forbidden

from flask_shibgate.context import SessionTokenStorage
from flask_shibgate.data import AUTH_ERROR_KEY, AuthenticationFailure
from flask_shibgate.exceptions import ConfigurationError
from flask_shibgate.listener import ShibbolethListener
from flask_shibgate.manager import AuthenticationManager, CallbackAuthenticationManager, StaticAuthenticationManager
from flask_shibgate.signals import interactive_login
from flask_shibgate.source import AttributeSource, ShibbolethAttributeSource
from flask_shibgate.util import get_state, resolve_type


class Shibgate:
    """Base class of the Flask-Shibgate extension.

    :param app: The flask application. If omitted, use :meth:`init_app`
                to initialize the extension for you application.
    """

    def __init__(self, app=None):
        self.authentication_callback = None
        self.registry = {
            AuthenticationManager: {'static': StaticAuthenticationManager},
            AttributeSource: {'shibboleth': ShibbolethAttributeSource},
        }
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize the extension for a Flask application.

        This is only necessary if the application was not provided in the
        constructor, e.g. because there is more than one application or you
        are using an application factory.

        The authentication handler (if used) needs to be registered before
        calling this method.

        :param app: The flask application
        """
        if 'shibgate' in app.extensions:
            raise RuntimeError('Flask application already initialized')
        app.config.setdefault('SHIBGATE_PROVIDER_KEY', 'shibboleth')
        app.config.setdefault('SHIBGATE_CHECK_PATH', '/login/shibboleth')
        app.config.setdefault('SHIBGATE_ATTRIBUTE_SOURCE', {})
        app.config.setdefault('SHIBGATE_AUTHENTICATION_MANAGER', None)
        app.config.setdefault('SHIBGATE_ENABLE_LOGGING', True)
        app.config.setdefault('SHIBGATE_NOTIFY_LOGIN', True)
        app.config.setdefault('SHIBGATE_REDIRECT_UNAUTHENTICATED', True)
        app.config.setdefault('SHIBGATE_SUCCESS_ENDPOINT', None)
        app.config.setdefault('SHIBGATE_FAILURE_ENDPOINT', None)
        app.config.setdefault('SHIBGATE_HOME_ENDPOINT', 'index')
        app.config.setdefault('SHIBGATE_FAILURE_MESSAGE', 'Authentication failed: {error}')
        app.config.setdefault('SHIBGATE_FAILURE_CATEGORY', 'error')
        app.config.setdefault('SHIBGATE_FLASH_FAILURES', False)
        app.config.setdefault('SHIBGATE_TOKEN_SESSION_KEY', '_shibgate_token')
        state = _ShibgateState(self, app)
        with app.app_context():
            state.attribute_source = self._create_attribute_source()
            state.token_storage = SessionTokenStorage(current_app.config['SHIBGATE_TOKEN_SESSION_KEY'])
            state.listener = self._create_listener(state)
        app.extensions['shibgate'] = state
        app.before_request(self._handle_request)

    @property
    def listener(self):
        """The firewall listener of the current application"""
        return get_state().listener

    @property
    def token(self):
        """The :class:`.AuthToken` bound to the current session"""
        return get_state().token_storage.get_token()

    def register_manager(self, cls, type_):
        """Registers a new authentication manager type.

        :param cls: A subclass of :class:`.AuthenticationManager`.
        :param type_: The type name used in the ``type`` key of
                      ``SHIBGATE_AUTHENTICATION_MANAGER``.
        """
        self._register(AuthenticationManager, cls, type_)

    def register_source(self, cls, type_):
        """Registers a new attribute source type.

        :param cls: A subclass of :class:`.AttributeSource`.
        :param type_: The type name used in the ``type`` key of
                      ``SHIBGATE_ATTRIBUTE_SOURCE``.
        """
        self._register(AttributeSource, cls, type_)

    def _register(self, base, cls, type_):
        if not issubclass(cls, base):
            raise TypeError(f'{cls.__name__} is not a subclass of {base.__name__}')
        registry = self.registry[base]
        assert type_ not in registry, 'Type is already registered: ' + cls.__name__
        registry[type_] = cls

    def authentication_handler(self, callback):
        """
        Registers the callback function that verifies asserted identities.

        It is used unless ``SHIBGATE_AUTHENTICATION_MANAGER`` is set and
        receives a provisional :class:`.AuthToken`.  It needs to return
        a verified token (see :meth:`.AuthToken.verified`) or ``None``
        if the identity is not accepted.  Raising
        :exc:`.AuthenticationFailed` with a custom message works, too.
        """
        self.authentication_callback = callback
        return callback

    def get_auth_error(self, pop=False):
        """Returns the last authentication failure.

        :param pop: Remove the failure from the session.
        :return: An :class:`.AuthenticationFailure` or ``None``
        """
        data = session.pop(AUTH_ERROR_KEY, None) if pop else session.get(AUTH_ERROR_KEY)
        failure = g.get(AUTH_ERROR_KEY)
        if failure is not None:
            return failure
        return AuthenticationFailure.from_dict(data) if data else None

    def login_url(self, target=None):
        """Returns the URL of the Shibboleth login.

        :param target: The URL to return to after logging in. Defaults
                       to the current URL.
        """
        return get_state().attribute_source.get_login_url(request, target)

    def logout(self, return_url, clear_session=False):
        """Logs the user out.

        This removes the token from the session and returns a
        redirect to the Shibboleth SP's logout handler, which redirects
        back to `return_url` after the SP session has been terminated.

        :param return_url: The URL to redirect to after logging out.
        :param clear_session: If true, the Flask session is cleared.
        :return: A Flask response
        """
        state = get_state()
        state.token_storage.set_token(None)
        session.pop(AUTH_ERROR_KEY, None)
        if clear_session:
            session.clear()
        logout_url = state.attribute_source.get_logout_url(request, return_url)
        return redirect(logout_url or return_url)

    def authentication_required(self, func):
        """Decorates a view function that needs an authenticated user.

        Unauthenticated users are sent to the Shibboleth login, which
        returns them to the check path.  The view at the check path
        should call :meth:`redirect_success` to get back to the page
        they originally requested.  After a rejected login the user
        gets a 403 error instead of being sent to the login again.
        """
        @wraps(func)
        def decorator(*args, **kwargs):
            token = self.token
            if token is None or not token.authenticated:
                if AUTH_ERROR_KEY in session:
                    raise Forbidden('Authentication failed')
                session['_shibgate_next_url'] = request.url
                return redirect(self.login_url(target=self._get_check_url()))
            return func(*args, **kwargs)

        return decorator

    def redirect_success(self):
        """Redirects to whatever page should be displayed after login"""
        return redirect(self._get_next_url())

    def validate_next_url(self, url):
        """Checks if the URL can be used as a redirect target.

        Only URLs on the same host are accepted.
        """
        if any(ord(c) < 32 for c in url):
            return False
        # browsers treat backslashes like slashes
        url = url.replace('\\', '/')
        if url.startswith('///'):
            return False
        url_info = urlsplit(url)
        if url_info.scheme and url_info.scheme not in ('http', 'https'):
            return False
        if url_info.scheme and not url_info.netloc:
            return False
        if url_info.netloc and url_info.netloc != urlsplit(request.host_url).netloc:
            return False
        return True

    def _get_next_url(self):
        """Returns the saved URL to redirect to after logging in.

        This only works once, as the saved URL is removed from the
        session afterwards.  If no valid URL is saved, the home
        endpoint is used.
        """
        next_url = session.pop('_shibgate_next_url', None)
        if next_url and self.validate_next_url(next_url):
            return next_url
        return url_for(current_app.config['SHIBGATE_HOME_ENDPOINT'])

    def _get_check_url(self):
        check_path = current_app.config['SHIBGATE_CHECK_PATH']
        if check_path.startswith('/'):
            return request.host_url.rstrip('/') + request.script_root + check_path
        return url_for(check_path, _external=True)

    def _create_attribute_source(self):
        settings = dict(current_app.config['SHIBGATE_ATTRIBUTE_SOURCE'])
        cls = resolve_type(AttributeSource, settings.pop('type', 'shibboleth'), self.registry[AttributeSource])
        return cls(self, settings)

    def _create_manager(self):
        settings = current_app.config['SHIBGATE_AUTHENTICATION_MANAGER']
        if settings is None:
            if self.authentication_callback is None:
                raise ConfigurationError('No authentication manager configured. Set SHIBGATE_AUTHENTICATION_MANAGER '
                                         'or register one using the Shibgate.authentication_handler decorator.')
            return CallbackAuthenticationManager(self, {}, self.authentication_callback)
        settings = dict(settings)
        try:
            type_ = settings.pop('type')
        except KeyError:
            raise ConfigurationError('SHIBGATE_AUTHENTICATION_MANAGER has no type')
        cls = resolve_type(AuthenticationManager, type_, self.registry[AuthenticationManager])
        return cls(self, settings)

    def _create_listener(self, state):
        config = current_app.config
        settings = {
            'check_path': config['SHIBGATE_CHECK_PATH'],
            'redirect_unauthenticated': config['SHIBGATE_REDIRECT_UNAUTHENTICATED'],
            'success_endpoint': config['SHIBGATE_SUCCESS_ENDPOINT'],
            'failure_endpoint': config['SHIBGATE_FAILURE_ENDPOINT'],
            'flash_failures': config['SHIBGATE_FLASH_FAILURES'],
            'failure_message': config['SHIBGATE_FAILURE_MESSAGE'],
            'failure_category': config['SHIBGATE_FAILURE_CATEGORY'],
        }
        return ShibbolethListener(config['SHIBGATE_PROVIDER_KEY'], state.token_storage, self._create_manager(),
                                  settings=settings,
                                  enable_logging=config['SHIBGATE_ENABLE_LOGGING'],
                                  notifier=interactive_login if config['SHIBGATE_NOTIFY_LOGIN'] else None,
                                  attribute_source=state.attribute_source)

    def _handle_request(self):
        return get_state().listener.handle(request)


class _ShibgateState:
    def __init__(self, shibgate, app):
        self.shibgate = shibgate
        self.app = app
        self.attribute_source = None
        self.token_storage = None
        self.listener = None

    def __repr__(self):
        return f'<ShibgateState({self.shibgate}, {self.app})>'
