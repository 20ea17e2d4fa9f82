# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

from urllib.parse import quote

from werkzeug.datastructures import ImmutableDict

from flask_shibgate.exceptions import ConfigurationError


#: The server variables mod_shib sets with the default attribute-map.xml
DEFAULT_ATTRIBUTES = ImmutableDict({
    'identityProvider': 'Shib-Identity-Provider',
    'sessionId': 'Shib-Session-ID',
    'uid': 'Shib-Person-uid',
    'commonName': 'Shib-Person-commonName',
    'givenName': 'Shib-Person-givenName',
    'surname': 'Shib-Person-surname',
    'mail': 'Shib-Person-mail',
    'affiliation': 'Shib-EP-Affiliation',
    'entitlement': 'Shib-EP-Entitlement',
})


def _lower_keys(iter_):
    for k, v in iter_:
        yield k.lower(), v


class AttributeSource:
    """Provides the base for reading a federated identity from a request.

    :param shibgate: The Flask-Shibgate instance
    :param settings: The settings dictionary for this attribute source
    """

    #: The entry point to lookup attribute sources (do not override this!)
    _entry_point = 'flask_shibgate.attribute_sources'

    def __init__(self, shibgate, settings):
        self.shibgate = shibgate
        self.settings = settings.copy()

    def is_authenticated(self, request):  # pragma: no cover
        """Checks if the identity provider asserted a user."""
        raise NotImplementedError

    def get_user(self, request):  # pragma: no cover
        """Returns the asserted username."""
        raise NotImplementedError

    def get_attributes(self, request):  # pragma: no cover
        """Returns a dict containing the asserted attributes."""
        raise NotImplementedError

    def get_login_url(self, request, target=None):  # pragma: no cover
        """Returns the URL which starts the federated login.

        :param target: The URL to return to after logging in.
                       Defaults to the URL of the current request.
        """
        raise NotImplementedError

    def get_logout_url(self, request, return_url=None):
        """Returns the URL of an external logout page, if any."""
        return None

    def __repr__(self):
        return f'<{type(self).__name__}()>'


class ShibbolethAttributeSource(AttributeSource):
    """Reads the attributes a Shibboleth SP (mod_shib) sets.

    By default the attributes are taken from the WSGI environment, which
    is what mod_shib does when the application runs inside Apache.  Set
    ``from_headers`` when the SP sits in a reverse proxy which forwards
    the attributes as request headers.

    The type name to instantiate this attribute source is *shibboleth*.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.handler_path = self.settings.setdefault('handler_path', '/Shibboleth.sso')
        self.session_initiator_path = self.settings.setdefault('session_initiator_path', '/Login')
        self.secured_handler = self.settings.setdefault('secured_handler', True)
        self.from_headers = self.settings.setdefault('from_headers', False)
        self.charset = self.settings.setdefault('charset', 'utf-8')
        self.attributes = dict(self.settings.get('attributes') or DEFAULT_ATTRIBUTES)
        self.username_attribute = self.settings.setdefault('username_attribute', 'uid')
        for alias in ('identityProvider', self.username_attribute):
            if alias not in self.attributes:
                raise ConfigurationError('Attribute is not defined: ' + alias)

    def get_variables(self, request):
        """Returns the mapping the attributes are read from.

        Environment keys are lowercased since headers/WSGI vars are
        case-insensitive.  Build it once when reading many attributes.
        """
        if self.from_headers:
            return request.headers
        return dict(_lower_keys(request.environ.items()))

    def _decode(self, value):
        # WSGI servers decode the raw bytes as latin-1
        if not self.charset:
            return value
        try:
            return value.encode('latin-1').decode(self.charset)
        except (UnicodeEncodeError, UnicodeDecodeError):
            return value

    def get_attribute(self, request, alias, variables=None):
        if variables is None:
            variables = self.get_variables(request)
        name = self.attributes[alias]
        value = variables.get(name if self.from_headers else name.lower())
        if not isinstance(value, str):
            return None
        return self._decode(value) or None

    def is_authenticated(self, request):
        return bool(self.get_attribute(request, 'identityProvider'))

    def get_user(self, request):
        return self.get_attribute(request, self.username_attribute)

    def get_attributes(self, request):
        variables = self.get_variables(request)
        attributes = ((alias, self.get_attribute(request, alias, variables)) for alias in self.attributes)
        return {alias: value for alias, value in attributes if value}

    def get_handler_url(self, request):
        scheme = 'https' if self.secured_handler else request.scheme
        return f'{scheme}://{request.host}{self.handler_path}'

    def get_login_url(self, request, target=None):
        target = target or request.url
        return '{}{}?target={}'.format(self.get_handler_url(request), self.session_initiator_path,
                                      quote(target, safe=''))

    def get_logout_url(self, request, return_url=None):
        url = self.get_handler_url(request) + '/Logout'
        if return_url:
            url += '?return=' + quote(return_url, safe='')
        return url
