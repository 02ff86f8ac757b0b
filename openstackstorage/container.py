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

import functools

from openstackstorage import consts
from openstackstorage.exceptions import (
    CDNNotEnabled, ContainerNotPublic, InvalidContainerName, ResponseError)
from openstackstorage.storage_object import StorageObject
from openstackstorage.utils import (
    cache_key, config_true_value, filter_parameters, parse_api_response,
    parse_plain_listing)


def check_container_name(name):
    """
    :raises InvalidContainerName: the name is empty, contains a slash or is
                                  longer than 256 bytes once UTF-8 encoded
    """
    if not name or '/' in name or \
            len(name.encode('utf-8')) > consts.container_name_limit:
        raise InvalidContainerName(name)


def requires_cdn(func):
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        if not self.connection.cdn_enabled():
            raise CDNNotEnabled()
        return func(self, *args, **kwargs)
    return wrapper


class Container:
    """
    A container of objects in the storage service.

    Instances are returned by the
    :class:`~openstackstorage.client.Connection`; they hold the counters
    seen when the container was listed or fetched, and the CDN attributes
    of the container when the account has a CDN.
    """

    def __init__(self, connection, name, object_count=0, size_used=0,
                 metadata=None):
        check_container_name(name)
        self.connection = connection
        self.name = name
        self.object_count = int(object_count or 0)
        self.size_used = int(size_used or 0)
        self.metadata = metadata or {}

        self.cdn_uri = None
        self.cdn_ttl = consts.default_cdn_ttl
        self.cdn_ssl_uri = None
        self.cdn_streaming_uri = None
        self.cdn_log_retention = consts.cdn_log_retention
        self._listing_cache = {}

        if connection.cdn_enabled():
            self._load_cdn_attributes()

    def __repr__(self):
        return '<Container %r>' % self.name

    def _load_cdn_attributes(self):
        try:
            resp = self.connection.make_cdn_request('HEAD', [self.name])
        except ResponseError as err:
            # never published
            if err.http_status == 404:
                return
            raise
        self.cdn_uri = resp.headers.get('x-cdn-uri')
        self.cdn_ttl = int(resp.headers.get('x-ttl', self.cdn_ttl))
        self.cdn_ssl_uri = resp.headers.get('x-cdn-ssl-uri')
        self.cdn_streaming_uri = resp.headers.get('x-cdn-streaming-uri')
        self.cdn_log_retention = config_true_value(
            resp.headers.get('x-log-retention'))

    def update_metadata(self, metadata):
        """
        Update container metadata.

        >>> container.update_metadata({'X-Container-Meta-Foo': 'bar'})

        :param metadata: headers to POST to the container
        """
        self.connection.make_request('POST', [self.name], hdrs=metadata)

    def enable_static_web(self, index=None, listings=None, error=None,
                          listings_css=None):
        """
        Serve this container as a static web site. Every argument left as
        None clears the matching setting.

        :param index: name of the index object
        :param listings: whether to list objects when there is no index
        :param error: suffix of the error page objects
        :param listings_css: stylesheet used for listings
        """
        metadata = {
            'X-Container-Meta-Web-Index': '',
            'X-Container-Meta-Web-Listings': '',
            'X-Container-Meta-Web-Error': '',
            'X-Container-Meta-Web-Listings-CSS': '',
        }
        if index is not None:
            metadata['X-Container-Meta-Web-Index'] = str(index)
        if listings is not None:
            metadata['X-Container-Meta-Web-Listings'] = \
                'True' if listings else 'False'
        if error is not None:
            metadata['X-Container-Meta-Web-Error'] = str(error)
        if listings_css is not None:
            metadata['X-Container-Meta-Web-Listings-CSS'] = str(listings_css)
        self.update_metadata(metadata)

    def disable_static_web(self):
        self.enable_static_web()

    def enable_object_versioning(self, container_name):
        """Keep older versions of overwritten objects in container_name."""
        self.update_metadata({'X-Versions-Location': str(container_name)})

    def disable_object_versioning(self):
        self.update_metadata({'X-Versions-Location': ''})

    @requires_cdn
    def make_public(self, ttl=consts.default_cdn_ttl):
        """
        Publish the container on the CDN, or update its TTL when it is
        public already.

        :param ttl: cache duration in seconds of the CDN server
        """
        method = 'POST' if self.cdn_uri else 'PUT'
        resp = self.connection.make_cdn_request(
            method, [self.name],
            hdrs={'X-TTL': str(ttl), 'X-CDN-Enabled': 'True'})
        self.cdn_ttl = ttl
        self.cdn_uri = resp.headers.get('x-cdn-uri')
        self.cdn_ssl_uri = resp.headers.get('x-cdn-ssl-uri')
        self.cdn_streaming_uri = resp.headers.get('x-cdn-streaming-uri')

    @requires_cdn
    def make_private(self):
        """
        Disable CDN access to this container. Cached copies may stay
        reachable until their TTL expires.
        """
        self.connection.make_cdn_request(
            'POST', [self.name], hdrs={'X-CDN-Enabled': 'False'})
        self.cdn_uri = None

    @requires_cdn
    def purge_from_cdn(self, email=None):
        """
        Purge the edge caches of every object in this container.

        :param email: address(es), comma separated, notified when the purge
                      completes
        """
        headers = {}
        if email is not None:
            headers['X-Purge-Email'] = email
        self.connection.make_cdn_request('DELETE', [self.name], hdrs=headers)

    @requires_cdn
    def log_retention(self, enabled=False):
        """
        Turn CDN access log retention on or off. Retained logs are
        uploaded to the ``.CDN_ACCESS_LOGS`` container.
        """
        enabled = bool(enabled)
        self.connection.make_cdn_request(
            'POST', [self.name],
            hdrs={'X-Log-Retention': 'True' if enabled else 'False'})
        self.cdn_log_retention = enabled

    @requires_cdn
    def is_public(self):
        return self.cdn_uri is not None

    def _public(self, uri):
        if not self.is_public():
            raise ContainerNotPublic(self.name)
        return uri

    def public_uri(self):
        return self._public(self.cdn_uri)

    def public_ssl_uri(self):
        return self._public(self.cdn_ssl_uri)

    def public_streaming_uri(self):
        return self._public(self.cdn_streaming_uri)

    def create_object(self, name):
        """
        Return a StorageObject for name, loading its attributes when it
        exists already. Nothing is written until
        :meth:`StorageObject.write` is called.
        """
        return StorageObject(self, name)

    def get_object(self, name):
        """
        :raises NoSuchObject: the object does not exist
        """
        return StorageObject(self, name, force_exists=True)

    def delete_object(self, name):
        """
        Delete an object from this container.

        :param name: an object name or StorageObject instance
        """
        if isinstance(name, StorageObject):
            name = name.name
        StorageObject.check_name(name)
        self.connection.make_request('DELETE', [self.name, name])
        self.clear_cache()

    def get_objects(self, **parms):
        """
        Return a list of StorageObject instances built from the listing.
        Pseudo-directory entries of delimited listings are skipped.
        """
        return [StorageObject(self, record=record)
                for record in self.get_objects_info(**parms)
                if 'subdir' not in record]

    def get_objects_info(self, **parms):
        """
        Return the objects of this container as a list of dicts.

        Accepted parameters are ``limit``, ``marker``, ``end_marker``,
        ``prefix`` and ``delimiter``; anything else is ignored.
        """
        parms['format'] = 'json'
        headers, body = self._list_objects_raw(parms)
        return parse_api_response(headers, body)

    def get_objects_list(self, **parms):
        """Return the names of the objects in this container."""
        parms['format'] = 'plain'
        headers, body = self._list_objects_raw(parms)
        return parse_plain_listing(headers, body)

    def _list_objects_raw(self, parms):
        parms = filter_parameters(parms, consts.OBJECT_LIST_PARAMETERS)
        key = cache_key(parms)
        if key not in self._listing_cache:
            resp = self.connection.make_request('GET', [self.name],
                                                parms=parms)
            self._listing_cache[key] = (resp.headers, resp.content)
        return self._listing_cache[key]

    def clear_cache(self):
        """Forget the cached object listings."""
        self._listing_cache.clear()
