# Copyright (c) 2010-2012 OpenStack, LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or
# implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Miscellaneous utility functions for use with the storage service."""
import collections
import gzip
import io
import json
import re
from urllib.parse import urlparse

from openstackstorage.exceptions import InvalidUrl

TRUE_VALUES = set(('true', '1', 'yes', 'on', 't', 'y'))
DEFAULT_PORTS = {'http': 80, 'https': 443}
HOST_PATTERN = re.compile(r'^[a-zA-Z0-9\-\.:]+$')

UrlInfo = collections.namedtuple('UrlInfo', 'scheme host port path')


def config_true_value(value):
    """
    Returns True if the value is either True or a string in TRUE_VALUES.
    Returns False otherwise.
    """
    return value is True or \
        (isinstance(value, str) and value.lower() in TRUE_VALUES)


def parse_url(url):
    """
    Split an http(s) URL into its scheme, host, port and path.

    The port defaults to 443 for https and 80 for http; the path has its
    leading and trailing slashes trimmed.

    :param url: the URL to parse
    :returns: a :class:`UrlInfo`
    :raises InvalidUrl: the string is not a valid http or https URL
    """
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError, AttributeError):
        raise InvalidUrl('The string must be a valid URL')

    if parsed.scheme not in DEFAULT_PORTS:
        raise InvalidUrl('scheme must be one of http or https')

    host = parsed.hostname
    try:
        port = parsed.port
    except ValueError:
        port = -1
    if not host or not HOST_PATTERN.match(host) or \
            (port is not None and not 0 < port <= 65535):
        raise InvalidUrl('Invalid host and/or port: %s' % parsed.netloc)

    if port is None:
        port = DEFAULT_PORTS[parsed.scheme]
    return UrlInfo(parsed.scheme, host, port, parsed.path.strip('/'))


def get_body(headers, body):
    if headers.get('content-encoding') == 'gzip':
        with gzip.GzipFile(fileobj=io.BytesIO(body), mode='r') as gz:
            nbody = gz.read()
        return nbody
    return body


def _charset(headers):
    charset = 'utf-8'
    # the service *should* be speaking UTF-8, but check content-type
    content_type = headers.get('content-type', '')
    if '; charset=' in content_type:
        charset = content_type.split('; charset=', 1)[1].split(';', 1)[0]
    return charset


def parse_api_response(headers, body):
    """Decode a ``format=json`` listing body."""
    body = get_body(headers, body)
    if not body:
        return []
    return json.loads(body.decode(_charset(headers)))


def parse_plain_listing(headers, body):
    """Decode a ``format=plain`` listing body into a list of names."""
    body = get_body(headers, body)
    text = body.decode(_charset(headers)).strip()
    if not text:
        return []
    return text.split('\n')


def filter_parameters(parms, allowed):
    """
    Keep only the query parameters whose names are in ``allowed``.

    Unknown names are dropped silently, and so are parameters whose value
    is None.
    """
    return dict((k, v) for k, v in parms.items()
                if k in allowed and v is not None)


def cache_key(parms):
    """Canonical, hashable key for a set of query parameters."""
    return tuple(sorted((k, str(v)) for k, v in parms.items()))


def metadata_from_headers(headers, prefix):
    """
    Collect the user metadata found in response headers.

    :param headers: response headers
    :param prefix: lower case metadata prefix, e.g. ``x-container-meta-``
    :returns: a dict of metadata keyed by lower case header name with the
              prefix stripped
    """
    metadata = {}
    for header, value in headers.items():
        header = header.lower()
        if header.startswith(prefix):
            metadata[header[len(prefix):]] = value
    return metadata
