# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

import pytest

from flask_shibgate.data import AuthenticationFailure, AuthToken
from flask_shibgate.exceptions import AuthenticationFailed, NoSuchUser


def test_provisional_token_not_authenticated():
    token = AuthToken.provisional('jdoe', {'mail': 'jdoe@example.org'}, 'main', 'shibboleth')
    assert not token.authenticated
    assert not token.is_authenticated_by('shibboleth')
    assert token.roles == ()


def test_verified_token():
    token = AuthToken.provisional('jdoe', {'mail': 'jdoe@example.org'}, 'main', 'shibboleth')
    verified = token.verified(roles=['admin'])
    assert verified is not token
    assert not token.authenticated
    assert verified.authenticated
    assert verified.is_authenticated_by('shibboleth')
    assert not verified.is_authenticated_by('form')
    assert verified.roles == ('admin',)
    assert verified.attributes == {'mail': 'jdoe@example.org'}
    assert verified.provider_key == 'main'


def test_verified_token_replace_attributes():
    token = AuthToken.provisional('jdoe', {'mail': 'jdoe@example.org'}, 'main', 'shibboleth')
    assert token.verified(attributes={'name': 'John'}).attributes == {'name': 'John'}


def test_attributes_copied():
    attributes = {'mail': 'jdoe@example.org'}
    token = AuthToken('jdoe', attributes)
    token.attributes['mail'] = 'other@example.org'
    assert attributes['mail'] == 'jdoe@example.org'


def test_token_dict():
    token = AuthToken('jdoe', {'mail': 'jdoe@example.org'}, 'main', 'shibboleth', authenticated=True, roles=['a'])
    data = token.to_dict()
    assert data == {'username': 'jdoe', 'attributes': {'mail': 'jdoe@example.org'}, 'provider_key': 'main',
                    'mechanism': 'shibboleth', 'authenticated': True, 'roles': ['a']}
    assert AuthToken.from_dict(data) == token


def test_token_from_minimal_dict():
    token = AuthToken.from_dict({'username': 'jdoe'})
    assert not token.authenticated
    assert token.attributes == {}
    assert token.mechanism is None


def test_token_repr():
    token = AuthToken('jdoe', provider_key='main', mechanism='shibboleth')
    assert repr(token) == '<AuthToken(jdoe, main, provisional)>'
    assert repr(token.verified()) == '<AuthToken(jdoe, main, authenticated by shibboleth)>'


@pytest.mark.parametrize(('exc', 'kind', 'message'), (
    (AuthenticationFailed('attribute policy violation'), 'AuthenticationFailed', 'attribute policy violation'),
    (NoSuchUser(), 'NoSuchUser', 'No such user'),
    (AuthenticationFailed(), 'AuthenticationFailed', ''),
))
def test_failure_from_exception(exc, kind, message):
    failure = AuthenticationFailure.from_exception(exc)
    assert failure.kind == kind
    assert failure.message == message
    assert AuthenticationFailure.from_dict(failure.to_dict()) == failure
