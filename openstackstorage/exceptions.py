# Copyright (c) 2010-2013 OpenStack, LLC.
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

import urllib.parse


class Error(Exception):
    """
    Base class for all errors raised by this package.

    The ``http_*`` attributes are filled in when the error was caused by
    a response from the storage or authentication service.
    """

    def __init__(self, msg='', http_scheme='', http_host='', http_port='',
                 http_path='', http_query='', http_status=None,
                 http_reason='', http_response_content='',
                 http_response_headers=None, response=None):
        super(Error, self).__init__(msg)
        self.msg = msg
        self.http_scheme = http_scheme
        self.http_host = http_host
        self.http_port = http_port
        self.http_path = http_path
        self.http_query = http_query
        self.http_status = http_status
        self.http_reason = http_reason
        self.http_response_content = http_response_content
        self.http_response_headers = http_response_headers
        self.response = response

        self.transaction_id = None
        if self.http_response_headers:
            for header in ('X-Trans-Id', 'X-Openstack-Request-Id'):
                if header in self.http_response_headers:
                    self.transaction_id = self.http_response_headers[header]
                    break

    @classmethod
    def from_response(cls, resp, msg=None, body=None):
        msg = msg or '%s %s' % (resp.status_code, resp.reason)
        if body is None:
            body = resp.content
        request = getattr(resp, 'request', None)
        parsed_url = urllib.parse.urlparse(getattr(request, 'url', '') or '')
        return cls(msg=msg,
                   http_scheme=parsed_url.scheme,
                   http_host=parsed_url.hostname,
                   http_port=parsed_url.port,
                   http_path=parsed_url.path,
                   http_query=parsed_url.query,
                   http_status=resp.status_code,
                   http_reason=resp.reason,
                   http_response_content=body,
                   http_response_headers=resp.headers,
                   response=resp)

    @property
    def status(self):
        return self.http_status

    @property
    def reason(self):
        return self.http_reason

    def __str__(self):
        a = self.msg
        b = ''
        if self.http_scheme:
            b += '%s://' % self.http_scheme
        if self.http_host:
            b += self.http_host
        if self.http_port:
            b += ':%s' % self.http_port
        if self.http_path:
            b += self.http_path
        if self.http_query:
            b += '?%s' % self.http_query
        if self.http_status:
            if b:
                b = '%s %s' % (b, self.http_status)
            else:
                b = str(self.http_status)
        if self.http_reason:
            if b:
                b = '%s %s' % (b, self.http_reason)
            else:
                b = '- %s' % self.http_reason
        if self.http_response_content:
            if len(self.http_response_content) <= 60:
                b += '   %s' % self.http_response_content
            else:
                b += '  [first 60 chars of response] %s' \
                    % self.http_response_content[:60]
        c = ''
        if self.transaction_id:
            c = ' (txn: %s)' % self.transaction_id
        return b and '%s: %s%s' % (a, b, c) or (a + c)


class ResponseError(Error):
    """
    Raised when the remote service returns a non-2xx response.

    The causing response is kept on ``response``; its status code and
    reason phrase are available as ``status`` and ``reason``.
    """


class InvalidUrl(Error):
    """Not a valid http(s) URL."""


class AuthenticationFailed(Error):
    """The supplied credentials were rejected by the auth service."""

    def __init__(self, msg='Authentication failed', **kwargs):
        super(AuthenticationFailed, self).__init__(msg, **kwargs)


class AuthenticationError(Error):
    """The auth service returned an incomplete 2xx response."""


class CDNNotEnabled(Error):

    def __init__(self, msg='CDN is not enabled for this account', **kwargs):
        super(CDNNotEnabled, self).__init__(msg, **kwargs)


class InvalidContainerName(Error):
    pass


class InvalidObjectName(Error):
    pass


class InvalidMetaName(Error):
    pass


class InvalidMetaValue(Error):
    pass


class NoSuchContainer(Error):
    pass


class NoSuchObject(Error):
    pass


class ContainerExists(Error):
    pass


class ContainerNotEmpty(Error):

    def __init__(self, container_name, **kwargs):
        self.container_name = container_name
        super(ContainerNotEmpty, self).__init__(
            'Cannot delete non-empty Container %s' % container_name,
            **kwargs)


class ContainerNotPublic(Error):
    pass
