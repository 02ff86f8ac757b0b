# -*- encoding: utf-8 -*-
""""
OpenStack Object Storage Python client binding.
"""
from openstackstorage.client import Authentication, Connection, Session
from openstackstorage.container import Container
from openstackstorage.exceptions import (
    AuthenticationError, AuthenticationFailed, CDNNotEnabled,
    ContainerExists, ContainerNotEmpty, ContainerNotPublic, Error,
    InvalidContainerName, InvalidMetaName, InvalidMetaValue,
    InvalidObjectName, InvalidUrl, NoSuchContainer, NoSuchObject,
    ResponseError)
from openstackstorage.storage_object import StorageObject
from openstackstorage.utils import UrlInfo, parse_url
from openstackstorage.version import version_string as __version__

__all__ = [
    'Authentication', 'AuthenticationError', 'AuthenticationFailed',
    'CDNNotEnabled', 'Connection', 'Container', 'ContainerExists',
    'ContainerNotEmpty', 'ContainerNotPublic', 'Error',
    'InvalidContainerName', 'InvalidMetaName', 'InvalidMetaValue',
    'InvalidObjectName', 'InvalidUrl', 'NoSuchContainer', 'NoSuchObject',
    'ResponseError', 'Session', 'StorageObject', 'UrlInfo', 'parse_url',
]
