# This file is part of Flask-Shibgate.
# Copyright (C) 2021 CERN
#
# Flask-Shibgate is free software; you can redistribute it
# and/or modify it under the terms of the Revised BSD License.

from importlib.metadata import entry_points as importlib_entry_points
from inspect import isclass

from flask import current_app


def get_state(app=None):
    """Gets the application-specific shibgate data.

    :param app: The Flask application. Defaults to the current app.
    :rtype: flask_shibgate.core._ShibgateState
    """
    if app is None:
        app = current_app
    assert 'shibgate' in app.extensions, \
        'The shibgate extension was not registered to the current application. ' \
        'Please make sure to call init_app() first.'
    return app.extensions['shibgate']


def resolve_type(base, type_, registry=None):
    """Resolves a manager or attribute source type to its class

    :param base: The base class, which must have an ``_entry_point``
                 attribute.
    :param type_: The type name. Can be a subclass of `base` or the
                  identifier of a registered type.
    :param registry: A dict containing registered types. Any type
                     defined in this dict takes priority over an
                     entrypoint-based one with the same name.
    :return: The type's class, which is a subclass of `base`.
    """
    if isclass(type_):
        if not issubclass(type_, base):
            raise TypeError(f'Received a class {type_} which is not a subclass of {base}')
        return type_

    if registry is not None and type_ in registry:
        cls = registry[type_]
    else:
        entry_points = importlib_entry_points(group=base._entry_point, name=type_)
        if not entry_points:
            raise ValueError('Unknown type: ' + type_)
        elif len(entry_points) != 1:
            defined_in = ', '.join(ep.module for ep in entry_points)
            raise RuntimeError(f'Type {type_} is not unique. Defined in {defined_in}')
        entry_point = list(entry_points)[0]
        cls = entry_point.load()
    if not issubclass(cls, base):
        raise TypeError(f'Found a class {cls} which is not a subclass of {base}')
    return cls


def check_request_path(request, path):
    """Checks if the request matches a configured path.

    :param request: The Flask request.
    :param path: Either an absolute path (starting with ``/``) which
                 must match the request path exactly, or the name of
                 an endpoint.
    """
    if not path:
        return False
    if path.startswith('/'):
        return request.path == path
    return request.endpoint == path
