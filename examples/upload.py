import logging

from os import environ, walk
from os.path import join, relpath
from sys import argv

from openstackstorage import Connection, Error

logging.basicConfig(level=logging.ERROR)
logging.getLogger("requests").setLevel(logging.CRITICAL)
logging.getLogger("openstackstorage").setLevel(logging.CRITICAL)
logger = logging.getLogger(__name__)

dir = argv[1]
container_name = argv[2]
conn = Connection(environ['ST_USER'], environ['ST_KEY'], environ['ST_AUTH'])
try:
    container = conn.create_container(container_name)
    # Upload every file below the given directory, keeping its relative
    # path as the object name
    for (_dir, _ds, _fs) in walk(dir):
        for _f in _fs:
            path = join(_dir, _f)
            obj = container.create_object(relpath(path, dir))
            obj.load_from_filename(path)
            print(obj.name)
    if conn.cdn_enabled():
        container.make_public()
        print('Published at %s' % container.public_uri())
except Error as e:
    logger.error(e)
finally:
    conn.close()
