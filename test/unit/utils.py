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

import json
import os
import unittest
from unittest import mock

import requests
from requests.structures import CaseInsensitiveDict
from urllib.parse import urlparse

from openstackstorage import client as c

AUTH_URL = 'https://auth.example.com/v1.0'
STORAGE_URL = 'https://storage.example.com/v1/AUTH_test'
CDN_URL = 'https://cdn.example.com/v1/AUTH_test'


class StubResponse(object):
    """
    Placeholder structure for the responses queued in a MockHttpTest; it is
    turned into a real requests response when the request is made.
    """

    def __init__(self, status=200, body=b'', headers=None, reason=None):
        self.status = status
        if isinstance(body, str):
            body = body.encode('utf-8')
        elif not isinstance(body, bytes):
            body = json.dumps(body).encode('utf-8')
        self.body = body
        self.headers = headers or {}
        self.reason = reason or 'Fake'

    def __repr__(self):
        return '%s(%r, %r, %r)' % (self.__class__.__name__, self.status,
                                   self.body, self.headers)

    def to_response(self, method, url):
        resp = requests.Response()
        resp.status_code = self.status
        resp.reason = self.reason
        resp.headers = CaseInsensitiveDict(self.headers)
        resp.url = url
        resp._content = self.body
        resp._content_consumed = True
        resp.request = requests.Request(method, url).prepare()
        return resp


def auth_response(token='token', storage_url=STORAGE_URL, cdn_url=None,
                  status=204):
    headers = {'X-Auth-Token': token, 'X-Storage-Url': storage_url}
    if cdn_url:
        headers['X-CDN-Management-Url'] = cdn_url
    return StubResponse(status, headers=headers)


class MockHttpTest(unittest.TestCase):
    """
    Replaces the transport of every HTTPConnection: requests are recorded
    in request_log and answered from the queue filled by fake_responses.
    A queued exception is raised instead of answering.
    """

    def setUp(self):
        super(MockHttpTest, self).setUp()
        self.request_log = []
        self.responses = []

        patcher = mock.patch.object(c.HTTPConnection, '_request',
                                    autospec=True,
                                    side_effect=self._fake_request)
        patcher.start()
        self.addCleanup(patcher.stop)

        env = mock.patch.dict(os.environ)
        env.start()
        self.addCleanup(env.stop)
        os.environ.pop('RACKSPACE_SERVICENET', None)

    def fake_responses(self, *responses):
        for resp in responses:
            if isinstance(resp, int):
                resp = StubResponse(resp)
            self.responses.append(resp)

    def _fake_request(self, conn, method, url, headers=None, data=None,
                      **kwargs):
        if not self.responses:
            self.fail('Unexpected %s request for %s' % (method, url))
        if hasattr(data, 'read'):
            data = data.read()
        parsed = urlparse(url)
        self.request_log.append({
            'method': method,
            'url': url,
            'host': parsed.hostname,
            'path': parsed.path,
            'query': parsed.query,
            'headers': CaseInsensitiveDict(headers or {}),
            'body': data,
            'kwargs': kwargs,
        })
        stub = self.responses.pop(0)
        if isinstance(stub, Exception):
            raise stub
        return stub.to_response(method, url)

    def connection(self, **kwargs):
        return c.Connection('user', 'key', AUTH_URL, **kwargs)

    def authenticated_connection(self, cdn=False, token='token', **kwargs):
        conn = self.connection(**kwargs)
        self.fake_responses(auth_response(
            token=token, cdn_url=CDN_URL if cdn else None))
        conn.authenticate()
        self.request_log = []
        return conn

    def assert_request_equal(self, expected, real_request):
        method, path = expected[:2]
        self.assertEqual((method, path),
                         (real_request['method'], real_request['path']))
        if len(expected) > 2:
            for key, value in CaseInsensitiveDict(expected[2]).items():
                self.assertEqual(
                    value, real_request['headers'].get(key),
                    'Header mismatch on %r for %s %s' % (key, method, path))

    def assertRequests(self, expected_requests):
        """
        Make sure some requests were made like you expected, provide a list of
        expected requests, typically in the form of [(method, path), ...]
        or [(method, path, headers), ...]
        """
        self.assertEqual(
            len(expected_requests), len(self.request_log),
            'Expected %d requests, got %r' % (
                len(expected_requests),
                [(r['method'], r['url']) for r in self.request_log]))
        for expected, real_request in zip(expected_requests,
                                          self.request_log):
            self.assert_request_equal(expected, real_request)

    def validateMockedRequestsConsumed(self):
        if self.responses:
            self.fail('Unused responses %r' % (self.responses,))

    def tearDown(self):
        self.validateMockedRequestsConsumed()
        super(MockHttpTest, self).tearDown()
