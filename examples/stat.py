import logging
import pprint

from os import environ
from sys import argv

from openstackstorage import Connection, NoSuchObject

logging.basicConfig(level=logging.ERROR)
logging.getLogger("requests").setLevel(logging.CRITICAL)
logging.getLogger("openstackstorage").setLevel(logging.CRITICAL)
logger = logging.getLogger(__name__)

conn = Connection(environ['ST_USER'], environ['ST_KEY'], environ['ST_AUTH'])
container = conn.get_container(argv[1])
objects = argv[2:]
stats = {}
for name in objects:
    try:
        obj = container.get_object(name)
    except NoSuchObject:
        logger.error('Failed to retrieve stats for %s' % name)
        continue
    stats[name] = {
        'content_type': obj.content_type,
        'size': obj.size,
        'etag': obj.etag,
        'last_modified': obj.last_modified,
        'metadata': obj.metadata,
    }
pprint.pprint(stats)
conn.close()
