""" Single-flight FIFO execution of request/reply exchanges. The drone's
    request channel supports exactly one outstanding exchange; everything
    that writes to it goes through a :class:`RequestQueue`.
"""

import concurrent.futures
import logging
import threading

logger = logging.getLogger(__name__)


class RequestQueue:
    """ Run submitted tasks one at a time, strictly in submission order, on
        a single background worker. A task is not started until the
        previous task has finished, successfully or not; a task raising an
        exception only affects its own :class:`concurrent.futures.Future`.
    """

    def __init__(self, name='request-queue'):

        self.name = name
        self.lock = threading.Lock()
        self.workers = concurrent.futures.ThreadPoolExecutor(
                                max_workers=1, thread_name_prefix=name)
        self.closed = False


    def enqueue(self, task, *args, **kwargs):
        """ Schedule *task* to be called with the remaining arguments and
            return the :class:`concurrent.futures.Future` that will hold its
            result.
        """

        with self.lock:
            if self.closed:
                raise RuntimeError(self.name + ' is shut down')

            return self.workers.submit(self._run, task, args, kwargs)


    def _run(self, task, args, kwargs):

        name = getattr(task, '__name__', repr(task))
        logger.debug('%s: starting %s', self.name, name)

        try:
            return task(*args, **kwargs)
        finally:
            logger.debug('%s: finished %s', self.name, name)


    def shutdown(self, wait=True):
        """ Stop accepting new tasks. Tasks already queued still run; if
            *wait* is True this call blocks until they have.
        """

        with self.lock:
            self.closed = True

        self.workers.shutdown(wait=wait)


# end of class RequestQueue


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
