import logging

from os import environ
from sys import argv

from openstackstorage import Connection, Error

logging.basicConfig(level=logging.ERROR)
logging.getLogger("requests").setLevel(logging.CRITICAL)
logging.getLogger("openstackstorage").setLevel(logging.CRITICAL)
logger = logging.getLogger(__name__)

container_name = argv[1]
minimum_size = 10*1024**2
conn = Connection(environ['ST_USER'], environ['ST_KEY'], environ['ST_AUTH'])
try:
    container = conn.get_container(container_name)
    marker = None
    while True:
        page = container.get_objects_info(marker=marker, limit=1000)
        if not page:
            break
        for item in page:
            i_size = int(item["bytes"])
            if i_size > minimum_size:
                print(
                    "%s [size: %s] [etag: %s]" %
                    (item["name"], i_size, item["hash"])
                )
        marker = page[-1]["name"]

except Error as e:
    logger.error(e)
finally:
    conn.close()
