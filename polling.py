import time


class PollTimeout(Exception):
    pass


class Poller:
    """
    Calls a step repeatedly until it returns True.

    The first attempt runs immediately, then one attempt every `interval` seconds.
    Raises PollTimeout once `timeout` seconds have passed without success
    (timeout=None polls forever). `clock` and `sleep` are injectable so tests
    don't wait on the wall clock.
    """

    def __init__(self, interval=15, timeout=None, clock=time.monotonic, sleep=time.sleep):
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        self.timeout = timeout
        self.clock = clock
        self.sleep = sleep

    def run(self, step):
        start = self.clock()
        attempts = 0
        while True:
            attempts += 1
            if step():
                return attempts

            elapsed = self.clock() - start
            if self.timeout is not None and elapsed + self.interval > self.timeout:
                raise PollTimeout(f"gave up after {attempts} attempts ({elapsed:.0f}s)")
            self.sleep(self.interval)
