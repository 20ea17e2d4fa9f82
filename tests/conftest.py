# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

import pytest
from flask import Flask


#: What mod_shib puts into the WSGI environment after a login
SHIB_ENVIRON = {
    'Shib-Identity-Provider': 'idp.example.org',
    'Shib-Session-ID': '_4f2d1c9b0e',
    'Shib-Person-uid': 'jdoe',
    'Shib-Person-mail': 'jdoe@example.org',
}


@pytest.fixture
def shib_environ():
    return dict(SHIB_ENVIRON)


@pytest.fixture
def app():
    app = Flask('test')
    app.config['SECRET_KEY'] = 'testing'
    app.add_url_rule('/', 'index', lambda: 'index')
    return app
