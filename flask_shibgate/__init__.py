# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

from flask_shibgate.core import Shibgate
from flask_shibgate.data import AUTH_ERROR_KEY, AuthenticationFailure, AuthToken
from flask_shibgate.exceptions import AuthenticationFailed, ConfigurationError, NoSuchUser, ShibgateException
from flask_shibgate.listener import AuthenticationListener, Reconciliation, ShibbolethListener, reconcile_token
from flask_shibgate.manager import AuthenticationManager
from flask_shibgate.signals import InteractiveLoginEvent, interactive_login
from flask_shibgate.source import AttributeSource, ShibbolethAttributeSource


__version__ = '0.1'
__all__ = ('Shibgate', 'AuthToken', 'AuthenticationFailure', 'AUTH_ERROR_KEY', 'AuthenticationListener',
           'ShibbolethListener', 'Reconciliation', 'reconcile_token', 'AuthenticationManager', 'AttributeSource',
           'ShibbolethAttributeSource', 'InteractiveLoginEvent', 'interactive_login', 'ShibgateException',
           'AuthenticationFailed', 'NoSuchUser', 'ConfigurationError')
