import os


def is_plain_name(name):
    """True for a single path component usable as a file or album name."""
    return bool(name) and os.path.basename(name) == name and name not in (".", "..")


class MediaRegistry(object):
    """
    Contract for how code talks to the shared media registry.
    Implementation can use SQLite, a platform content provider, etc.,
    but must keep the same method names and parameters.

    A record is allocated pending, so readers cannot see it until
    finalize() clears the flag.
    """

    def allocate(self, name, mime_type, album):
        """Return a handle for a new pending record, or None."""
        raise NotImplementedError()

    def open(self, handle):
        """Return a writable binary stream for the record, or None."""
        raise NotImplementedError()

    def finalize(self, handle):
        raise NotImplementedError()
