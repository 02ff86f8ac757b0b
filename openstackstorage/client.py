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

"""
OpenStack object storage client: authentication, session handling and
request routing.
"""
import logging
import os
import socket
import threading

from requests.exceptions import RequestException
from requests.structures import CaseInsensitiveDict
from urllib3.exceptions import HTTPError as urllib_http_error
from urllib.parse import quote, unquote, urlencode
from urllib.parse import urlparse, urlunparse

from openstackstorage import consts
from openstackstorage.container import Container, check_container_name
from openstackstorage.exceptions import (
    AuthenticationError, AuthenticationFailed, CDNNotEnabled,
    ContainerExists, ContainerNotEmpty, Error, NoSuchContainer,
    ResponseError)
from openstackstorage.requests_compat import StorageRequestsSession
from openstackstorage.utils import (
    cache_key, filter_parameters, get_body, metadata_from_headers,
    parse_api_response, parse_plain_listing, parse_url)

logger = logging.getLogger("openstackstorage")
logger.addHandler(logging.NullHandler())

#: Default behaviour is to redact header values known to contain secrets,
#: such as ``X-Auth-Key`` and ``X-Auth-Token``. Up to the first 16 chars
#: may be revealed.
#:
#: To disable, set the value of ``redact_sensitive_headers`` to ``False``.
#:
#: When header redaction is enabled, ``reveal_sensitive_prefix`` configures the
#: maximum length of any sensitive header data sent to the logs. If the header
#: is less than twice this length, only ``int(len(value)/2)`` chars will be
#: logged; if it is less than 15 chars long, even less will be logged.
logger_settings = {
    'redact_sensitive_headers': True,
    'reveal_sensitive_prefix': 16
}
#: A list of sensitive headers to redact in logs. Note that when extending this
#: list, the header names must be added in all lower case.
LOGGER_SENSITIVE_HEADERS = [
    'x-auth-token', 'x-auth-key', 'x-storage-token',
    'x-account-meta-temp-url-key', 'x-account-meta-temp-url-key-2',
    'x-container-meta-temp-url-key', 'x-container-meta-temp-url-key-2',
    'set-cookie'
]

#: Failures that leave no response to classify; retried once.
TRANSPORT_ERRORS = (socket.error, urllib_http_error, RequestException)


def safe_value(name, value):
    """
    Only show up to logger_settings['reveal_sensitive_prefix'] characters
    from a sensitive header.

    :param name: Header name
    :param value: Header value
    :return: Safe header value
    """
    if name.lower() in LOGGER_SENSITIVE_HEADERS:
        prefix_length = logger_settings.get('reveal_sensitive_prefix', 16)
        prefix_length = int(
            min(prefix_length, (len(value) ** 2) / 32, len(value) / 2)
        )
        redacted_value = value[0:prefix_length]
        return redacted_value + '...'
    return value


def scrub_headers(headers):
    """
    Redact header values that can contain sensitive information that
    should not be logged.

    :param headers: Either a dict or an iterable of two-element tuples
    :return: Safe dictionary of headers with sensitive information removed
    """
    if hasattr(headers, 'items'):
        headers = headers.items()
    headers = [
        (parse_header_string(key), parse_header_string(val))
        for (key, val) in headers
    ]
    if not logger_settings.get('redact_sensitive_headers', True):
        return dict(headers)
    if logger_settings.get('reveal_sensitive_prefix', 16) < 0:
        logger_settings['reveal_sensitive_prefix'] = 16
    return {key: safe_value(key, val) for (key, val) in headers}


def parse_header_string(data):
    if not isinstance(data, (str, bytes)):
        data = str(data)
    if isinstance(data, bytes):
        try:
            data = data.decode('ascii')
        except UnicodeDecodeError:
            data = quote(data)
    try:
        unquoted = unquote(data, errors='strict')
    except UnicodeDecodeError:
        return data
    return unquoted


def http_log(method, url, headers, resp, body=None):
    """Log the curl equivalent of a request, and its response."""
    if not logger.isEnabledFor(logging.INFO):
        return

    string_parts = ['curl -i']
    if method == 'HEAD':
        string_parts.append(' -I')
    else:
        string_parts.append(' -X %s' % method)
    string_parts.append(' %s' % parse_header_string(url))
    scrubbed = scrub_headers(headers or {})
    for element in scrubbed:
        string_parts.append(' -H "%s: %s"' % (element, scrubbed[element]))

    # log response as debug if good, or info if error
    if resp.status_code < 300:
        log_method = logger.debug
    else:
        log_method = logger.info

    log_method("REQ: %s", "".join(string_parts))
    log_method("RESP STATUS: %s %s", resp.status_code, resp.reason)
    log_method("RESP HEADERS: %s", scrub_headers(resp.headers))
    if body:
        log_method("RESP BODY: %s", get_body(resp.headers, body))


def encode_header_value(value):
    if type(value) in (int, float, bool):
        # As of requests 2.11.0, headers must be byte- or unicode-strings.
        # Convert some known-good types as a convenience for developers.
        value = str(value)
    return value


def build_path(base_path, path=None, parms=None):
    """
    Build the request path below a base URL path.

    :param base_path: path of the storage or CDN base URL
    :param path: sequence of path segments, quoted one by one; a ``/``
                 inside a segment is quoted too
    :param parms: query parameters
    """
    segments = [quote(str(segment), safe='') for segment in (path or [])]
    base_path = base_path.strip('/')
    if base_path:
        segments.insert(0, base_path)
    full_path = '/' + '/'.join(segments)
    if parms:
        full_path += '?' + urlencode(parms, quote_via=quote)
    return full_path


def servicenet_url(url):
    """
    Rewrite a storage URL to its ServiceNet variant by prefixing the host
    name with *snet-*. Traffic over ServiceNet stays on the provider's
    private network.
    """
    parsed = list(urlparse(url))
    # Second item in the list is the netloc
    parsed[1] = 'snet-' + parsed[1]
    return urlunparse(parsed)


class HTTPConnection:
    #: bodies given as file-like objects or iterators are streamed to the
    #: server instead of being buffered in memory first
    supports_streaming = True

    def __init__(self, url_info, insecure=False, cacert=None, timeout=None):
        """
        Make a connection to one base URL.

        :param url_info: :class:`~openstackstorage.utils.UrlInfo` to
                         connect to
        :param insecure: Allow to access servers without checking SSL certs.
                         The server's certificate will not be verified.
        :param cacert: A CA bundle file to use in verifying a TLS server
                       certificate.
        :param timeout: connect and read timeout in seconds, passed
                        directly to the requests library.
        """
        self.url_info = url_info
        self.requests_args = {}
        self.request_session = StorageRequestsSession()
        self.resp = None
        self.requests_args['verify'] = not insecure
        if cacert and not insecure:
            # verify requests parameter is used to pass the CA_BUNDLE file
            self.requests_args['verify'] = cacert
        self.requests_args['stream'] = True
        if timeout:
            self.requests_args['timeout'] = timeout

    @property
    def base_url(self):
        host = self.url_info.host
        if ':' in host:
            host = '[%s]' % host
        return '%s://%s:%d' % (self.url_info.scheme, host, self.url_info.port)

    def _request(self, *arg, **kwarg):
        """Final wrapper before requests call, to be patched in tests"""
        return self.request_session.request(*arg, **kwarg)

    def request(self, method, full_path, data=None, headers=None,
                stream=False):
        """
        Send one request and return the requests response.

        Unless ``stream`` is set the body is read before returning, which
        releases the connection back to the pool.
        """
        headers = dict((k, encode_header_value(v))
                       for k, v in (headers or {}).items())
        url = self.base_url + full_path
        self.resp = self._request(method, url, headers=headers, data=data,
                                  **self.requests_args)
        if not stream:
            self.resp.content
        return self.resp

    def close(self):
        if self.resp:
            self.resp.close()
        self.request_session.close()


def http_connection(url_info, **kwargs):
    """:returns: an :class:`HTTPConnection` to the given url info"""
    return HTTPConnection(url_info, **kwargs)


class Authentication:
    """
    Authentication instances are used to interact with the remote
    authentication service, retrieving storage system routing information
    and session tokens.

    The auth URL is parsed here, so an invalid one fails with
    :class:`~openstackstorage.exceptions.InvalidUrl` before any request is
    made.
    """

    def __init__(self, username, api_key, authurl,
                 useragent=consts.user_agent,
                 timeout=consts.default_timeout,
                 insecure=False, cacert=None):
        self.url_info = parse_url(authurl)
        self.timeout = timeout
        self.insecure = insecure
        self.cacert = cacert
        self.headers = {
            'x-auth-user': username,
            'x-auth-key': api_key,
            'User-Agent': useragent,
        }

    def authenticate(self):
        """
        Initiates authentication with the remote service.

        :returns: a tuple, (storage_url, cdn_url, auth_token); cdn_url is
                  None when the account has no CDN
        :raises AuthenticationFailed: the credentials were rejected
        :raises ResponseError: any other non-2xx response
        :raises AuthenticationError: the response lacks a token or a
                                     storage URL
        :raises Error: the request could not be sent
        """
        conn = http_connection(self.url_info, insecure=self.insecure,
                               cacert=self.cacert, timeout=self.timeout)
        path = '/' + self.url_info.path
        try:
            resp = conn.request('GET', path, headers=self.headers)
        except TRANSPORT_ERRORS as err:
            raise Error('Auth GET failed: %s' % err) from err
        finally:
            conn.close()
        http_log('GET', conn.base_url + path, self.headers, resp,
                 resp.content)

        # A status code of 401 indicates that the supplied credentials
        # were not accepted by the authentication service.
        if resp.status_code == 401:
            raise AuthenticationFailed.from_response(
                resp, 'Authentication failed')
        if resp.status_code // 100 != 2:
            raise ResponseError.from_response(resp, 'Auth GET failed')

        auth_token = resp.headers.get('x-auth-token') or \
            resp.headers.get('x-storage-token')
        storage_url = resp.headers.get('x-storage-url')
        cdn_url = resp.headers.get('x-cdn-management-url') or None

        if not (auth_token and storage_url):
            raise AuthenticationError(
                'Invalid response from the authentication service.')
        return storage_url, cdn_url, auth_token


class Session:
    """
    Authenticated state of a :class:`Connection`.

    A session is never modified once built; re-authentication replaces
    it as a whole.
    """

    def __init__(self, auth_token=None, storage_url_info=None,
                 cdn_url_info=None):
        self.auth_token = auth_token
        self.storage_url_info = storage_url_info
        self.cdn_url_info = cdn_url_info

    @property
    def cdn_enabled(self):
        return self.cdn_url_info is not None

    @property
    def authenticated(self):
        return bool(self.auth_token and self.storage_url_info)

    @classmethod
    def from_auth(cls, storage_url, cdn_url, auth_token, servicenet=False):
        """
        Build a session from the result of
        :meth:`Authentication.authenticate`.
        """
        if servicenet:
            storage_url = servicenet_url(storage_url)
        cdn_url_info = parse_url(cdn_url) if cdn_url else None
        return cls(auth_token, parse_url(storage_url), cdn_url_info)


class Connection:
    """
    Manages the connection to the storage system and serves as a factory
    for :class:`~openstackstorage.container.Container` instances.

    Authentication is lazy: the first request authenticates, and a 401
    from the service triggers one re-authentication and one resend.
    Any other failure to get a response (and any 5xx response) is resent
    once with the same token. There is no backoff and no further retry.

    Re-authentication is serialized by a lock, but a Connection is not
    otherwise meant to be shared between threads.
    """

    def __init__(self, username=None, api_key=None, authurl=None,
                 timeout=consts.default_timeout, useragent=None,
                 servicenet=None, insecure=False, cacert=None):
        """
        :param username: account user name
        :param api_key: account API key
        :param authurl: authentication service URL
        :param timeout: timeout in seconds for every request, including
                        authentication
        :param useragent: User-Agent sent with every request
        :param servicenet: use the ServiceNet storage URL; defaults to
                           True when the RACKSPACE_SERVICENET environment
                           variable is set
        :param insecure: do not verify TLS certificates
        :param cacert: CA bundle used to verify TLS certificates
        :raises ValueError: no authurl was given
        :raises InvalidUrl: authurl is not a valid http(s) URL
        """
        if not authurl:
            raise ValueError('Incorrect or invalid arguments supplied')
        if servicenet is None:
            servicenet = 'RACKSPACE_SERVICENET' in os.environ
        self.servicenet = servicenet
        self.user_agent = useragent or consts.user_agent
        self.timeout = timeout
        self.insecure = insecure
        self.cacert = cacert
        self.auth = Authentication(username, api_key, authurl,
                                   useragent=self.user_agent,
                                   timeout=timeout, insecure=insecure,
                                   cacert=cacert)
        self.session = Session()
        self._transports = {}
        self._transport_lock = threading.Lock()
        self._auth_lock = threading.Lock()
        self._listing_cache = {}

    def get_auth_token(self):
        return self.session.auth_token

    def get_cdn_enabled(self):
        return self.session.cdn_enabled

    def cdn_enabled(self):
        """
        Whether the account has a CDN, authenticating first if there is
        no session yet.
        """
        return self._ensure_authenticated().cdn_enabled

    def get_user_agent(self):
        return self.user_agent

    def get_timeout(self):
        return self.timeout

    def http_connection(self, url_info):
        return http_connection(url_info, insecure=self.insecure,
                               cacert=self.cacert, timeout=self.timeout)

    def get_transport(self, url_info):
        """
        Return the :class:`HTTPConnection` for the base URL of url_info,
        making it on first use.
        """
        key = (url_info.scheme, url_info.host, url_info.port)
        with self._transport_lock:
            conn = self._transports.get(key)
            if not conn:
                conn = self.http_connection(url_info)
                self._transports[key] = conn
            return conn

    def close(self):
        with self._transport_lock:
            transports = list(self._transports.values())
            self._transports.clear()
        for conn in transports:
            conn.close()

    def clear_cache(self):
        """Forget the cached container listings."""
        self._listing_cache.clear()

    def authenticate(self):
        """
        Authenticate and replace the current session.

        :returns: the new :class:`Session`
        """
        with self._auth_lock:
            return self._authenticate()

    def _authenticate(self):
        # Callers hold self._auth_lock. This is the only place the session
        # is replaced.
        storage_url, cdn_url, auth_token = self.auth.authenticate()
        session = Session.from_auth(storage_url, cdn_url, auth_token,
                                    servicenet=self.servicenet)
        self._listing_cache.clear()
        self.session = session
        logger.debug('Authenticated; storage at %s://%s:%s/%s, CDN %s',
                     session.storage_url_info.scheme,
                     session.storage_url_info.host,
                     session.storage_url_info.port,
                     session.storage_url_info.path,
                     'enabled' if session.cdn_enabled else 'disabled')
        return session

    def _ensure_authenticated(self):
        """
        Return an authenticated session, authenticating first if there
        is none yet. Every request goes through here.
        """
        session = self.session
        if session.authenticated:
            return session
        with self._auth_lock:
            if not self.session.authenticated:
                self._authenticate()
            return self.session

    def _reauthenticate(self, rejected_token):
        with self._auth_lock:
            if self.session.auth_token == rejected_token:
                logger.info('Auth token rejected, re-authenticating')
                self.session = Session()
                self._authenticate()
            return self.session

    def get_path(self, path=None):
        """Return the storage request path for the given segments."""
        session = self._ensure_authenticated()
        return build_path(session.storage_url_info.path, path)

    def make_request(self, method, path=None, data=None, hdrs=None,
                     parms=None, stream=False):
        """
        Performs an http request to the storage.

        :param method: name of the method (i.e. GET, PUT, POST, etc)
        :param path: list of segments appended to the storage URL path
        :param data: request body; bytes, str or a file-like object
        :param hdrs: additional headers, merged over User-Agent and
                     X-Auth-Token
        :param parms: query parameters
        :param stream: leave the response body unread
        :returns: the requests response
        :raises ResponseError: the final response was not 2xx
        :raises Error: no response could be obtained
        """
        return self._make_request(False, method, path, data, hdrs, parms,
                                  stream)

    def make_cdn_request(self, method, path=None, data=None, hdrs=None,
                         stream=False):
        """
        Performs an http request to the CDN management service.

        :raises CDNNotEnabled: the account has no CDN; nothing is sent
        """
        return self._make_request(True, method, path, data, hdrs, None,
                                  stream)

    def _make_request(self, cdn, method, path, data, hdrs, parms, stream):
        session = self._ensure_authenticated()
        if cdn and not session.cdn_enabled:
            raise CDNNotEnabled()
        reset = _body_resetter(data)

        try:
            resp = self._send(session, cdn, method, path, data, hdrs, parms,
                              stream)
        except TRANSPORT_ERRORS as err:
            logger.warning('%s request failed (%s), retrying once',
                           method, err)
            reset(err)
            resp = self._resend(session, cdn, method, path, data, hdrs,
                                parms, stream)
        else:
            if resp.status_code == 401:
                resp.close()
                session = self._reauthenticate(session.auth_token)
                if cdn and not session.cdn_enabled:
                    raise CDNNotEnabled()
                reset(None)
                resp = self._resend(session, cdn, method, path, data, hdrs,
                                    parms, stream)
            elif resp.status_code >= 500:
                logger.warning('%s request got %s %s, retrying once',
                               method, resp.status_code, resp.reason)
                resp.close()
                reset(None)
                resp = self._resend(session, cdn, method, path, data, hdrs,
                                    parms, stream)

        if resp.status_code < 200 or resp.status_code >= 300:
            raise ResponseError.from_response(resp)
        return resp

    def _resend(self, session, cdn, method, path, data, hdrs, parms,
                stream):
        try:
            return self._send(session, cdn, method, path, data, hdrs, parms,
                              stream, retry=True)
        except TRANSPORT_ERRORS as err:
            raise Error('%s request failed: %s' % (method, err)) from err

    def _send(self, session, cdn, method, path, data, hdrs, parms, stream,
              retry=False):
        url_info = session.cdn_url_info if cdn else session.storage_url_info
        conn = self.get_transport(url_info)
        full_path = build_path(url_info.path, path, parms)

        headers = CaseInsensitiveDict({
            'User-Agent': self.user_agent,
            'X-Auth-Token': session.auth_token,
        })
        if hdrs:
            headers.update(hdrs)
        if retry:
            headers['X-Auth-Token'] = session.auth_token

        resp = conn.request(method, full_path, data=data, headers=headers,
                            stream=stream)
        http_log(method, conn.base_url + full_path, headers, resp,
                 None if stream else resp.content)
        return resp

    def get_account_info(self):
        """
        Return a tuple, (number of containers, total bytes in the account,
        account metadata).
        """
        resp = self.make_request('HEAD')
        count = int(resp.headers.get('x-account-container-count', 0))
        size = int(resp.headers.get('x-account-bytes-used', 0))
        metadata = metadata_from_headers(resp.headers,
                                         consts.ACCOUNT_META_PREFIX)
        return count, size, metadata

    def update_account_metadata(self, metadata):
        """
        Update account metadata.

        >>> connection.update_account_metadata({'X-Account-Meta-Foo': 'bar'})

        :param metadata: headers to POST to the account
        """
        self.make_request('POST', hdrs=metadata)

    def create_container(self, container_name, error_on_existing=False):
        """
        Create a new container and return it.

        :param container_name: name of the container
        :param error_on_existing: raise ContainerExists when the container
                                  was already there
        :raises InvalidContainerName: the name is not valid
        :raises ContainerExists: see error_on_existing
        """
        check_container_name(container_name)
        resp = self.make_request('PUT', [container_name],
                                 hdrs={'Content-Length': '0'})
        self.clear_cache()
        if error_on_existing and resp.status_code == 202:
            raise ContainerExists(container_name)
        return Container(self, container_name)

    def delete_container(self, container_name):
        """
        Delete a container, and take it off the CDN when CDN is enabled.

        :param container_name: a container name or Container instance
        :raises NoSuchContainer: the container does not exist
        :raises ContainerNotEmpty: the container still holds objects
        """
        if isinstance(container_name, Container):
            container_name = container_name.name
        check_container_name(container_name)
        try:
            self.make_request('DELETE', [container_name])
        except ResponseError as err:
            if err.http_status == 409:
                raise ContainerNotEmpty(container_name, response=err.response)
            if err.http_status == 404:
                raise NoSuchContainer(container_name, response=err.response)
            raise
        self.clear_cache()

        if self.get_cdn_enabled():
            self.make_cdn_request('POST', [container_name],
                                  hdrs={'X-CDN-Enabled': 'False'})

    def get_container(self, container_name):
        """
        Return a Container instance for an existing container.

        :raises NoSuchContainer: the container does not exist
        """
        check_container_name(container_name)
        try:
            resp = self.make_request('HEAD', [container_name])
        except ResponseError as err:
            if err.http_status == 404:
                raise NoSuchContainer(container_name, response=err.response)
            raise
        count = resp.headers.get('x-container-object-count', 0)
        size = resp.headers.get('x-container-bytes-used', 0)
        metadata = metadata_from_headers(resp.headers,
                                         consts.CONTAINER_META_PREFIX)
        return Container(self, container_name, count, size, metadata)

    __getitem__ = get_container

    def get_containers(self, **parms):
        """
        Return a list of Container instances, one per listed container.

        Accepts the same parameters as :meth:`get_containers_info`.
        """
        return [Container(self, info['name'], info['count'], info['bytes'])
                for info in self.get_containers_info(**parms)]

    def get_containers_info(self, **parms):
        """
        Return a list of dicts with the name, object count and size of
        every container.

        Only the ``limit``, ``marker`` and ``end_marker`` parameters are
        sent; anything else is ignored.
        """
        parms['format'] = 'json'
        headers, body = self._list_containers_raw(parms)
        return parse_api_response(headers, body)

    def get_containers_list(self, **parms):
        """Return the names of the containers."""
        parms['format'] = 'plain'
        headers, body = self._list_containers_raw(parms)
        return parse_plain_listing(headers, body)

    def get_public_containers_list(self):
        """
        Return the names of the containers published on the CDN.

        :raises CDNNotEnabled: the account has no CDN
        """
        resp = self.make_cdn_request('GET')
        return parse_plain_listing(resp.headers, resp.content)

    def _list_containers_raw(self, parms):
        parms = filter_parameters(parms, consts.CONTAINER_LIST_PARAMETERS)
        key = cache_key(parms)
        if key not in self._listing_cache:
            resp = self.make_request('GET', parms=parms)
            self._listing_cache[key] = (resp.headers, resp.content)
        return self._listing_cache[key]


def _body_resetter(data):
    """
    Return a callable rewinding a request body before it is resent.
    """
    if data is None or isinstance(data, (str, bytes)):
        return lambda cause: None

    try:
        orig_pos = data.tell()
        seek = data.seek
    except (AttributeError, OSError):
        orig_pos = seek = None

    def reset(cause):
        if seek is None:
            raise Error('%s body cannot be rewound for a retry'
                        % type(data).__name__) from cause
        seek(orig_pos)
    return reset
