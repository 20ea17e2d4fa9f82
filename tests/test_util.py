# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

from importlib.metadata import EntryPoint

import pytest
from flask import Flask, request

from flask_shibgate import Shibgate
from flask_shibgate.util import check_request_path, get_state, resolve_type


def test_get_state_app_not_initialized():
    app = Flask('test')
    with pytest.raises(AssertionError):
        get_state(app)


def test_get_state():
    app = Flask('test')
    shibgate = Shibgate()
    shibgate.authentication_handler(lambda token: None)
    shibgate.init_app(app)
    # outside app ctx
    with pytest.raises(RuntimeError):
        assert get_state().app
    assert get_state(app).shibgate is shibgate
    with app.app_context():
        assert get_state().app is app


@pytest.mark.parametrize(('path', 'check_path', 'result'), (
    ('/login', '/login', True),
    ('/login/', '/login', False),
    ('/login/x', '/login', False),
    ('/other', '/login', False),
    ('/sso', 'login', True),
    ('/other', 'login', False),
    ('/sso', 'sso', False),
    ('/login', '', False),
    ('/login', None, False),
))
def test_check_request_path(path, check_path, result):
    app = Flask('test')
    app.add_url_rule('/sso', 'login', lambda: '')
    with app.test_request_context(path):
        assert check_request_path(request, check_path) == result


class DummyBase:
    _entry_point = 'fakemanagers'


class Dummy(DummyBase):
    pass


class FakeDummy:
    pass


class MockEntryPoint(EntryPoint):
    def load(self, *args, **kwargs):
        mapping = {
            'dummy': Dummy,
            'fake': FakeDummy,
        }
        return mapping[self.name]


def mock_entry_point(name, n=0):
    return MockEntryPoint(name, f'dummy.value.{n}', 'dummy.group')


@pytest.fixture
def mock_entry_points(monkeypatch):
    mock_eps = {
        'fakemanagers': [
            mock_entry_point('dummy'),
            mock_entry_point('fake'),
            mock_entry_point('multi'),
            mock_entry_point('multi', 1),
        ],
    }

    def _mock_entry_points(*, group, name):
        return [ep for ep in mock_eps[group] if ep.name == name]

    monkeypatch.setattr('flask_shibgate.util.importlib_entry_points', _mock_entry_points)


def test_resolve_type_class():
    assert resolve_type(DummyBase, Dummy) is Dummy
    with pytest.raises(TypeError):
        resolve_type(DummyBase, FakeDummy)


@pytest.mark.usefixtures('mock_entry_points')
def test_resolve_type_invalid():
    # unknown type
    with pytest.raises(ValueError):
        assert resolve_type(DummyBase, 'unknown')
    # non-unique type
    with pytest.raises(RuntimeError):
        assert resolve_type(DummyBase, 'multi')
    # invalid type
    with pytest.raises(TypeError):
        assert resolve_type(DummyBase, 'fake')


@pytest.mark.usefixtures('mock_entry_points')
def test_resolve_type():
    assert resolve_type(DummyBase, 'dummy') is Dummy


@pytest.mark.usefixtures('mock_entry_points')
def test_resolve_type_registry():
    assert resolve_type(DummyBase, 'unknown', {'unknown': Dummy}) is Dummy
    with pytest.raises(TypeError):
        resolve_type(DummyBase, 'dummy', {'dummy': FakeDummy})
