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

from openstackstorage.version import version_string

user_agent = 'python-openstackstorage/%s' % version_string
default_timeout = 5
default_cdn_ttl = 86400
cdn_log_retention = False

meta_name_limit = 128
meta_value_limit = 256
object_name_limit = 1024
container_name_limit = 256

ACCOUNT_META_PREFIX = 'x-account-meta-'
CONTAINER_META_PREFIX = 'x-container-meta-'
OBJECT_META_PREFIX = 'x-object-meta-'

#: Query parameters accepted when listing the containers of an account.
CONTAINER_LIST_PARAMETERS = ('limit', 'marker', 'end_marker', 'format')
#: Query parameters accepted when listing the objects of a container.
OBJECT_LIST_PARAMETERS = ('limit', 'marker', 'end_marker', 'prefix',
                          'format', 'delimiter')
