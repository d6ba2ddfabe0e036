"""Interface shared by everything that indirect references resolve against."""
from typing import Optional

from . import generic
from .misc import PdfReadError
from .settings import DEFAULT_PARSER_SETTINGS, ParserSettings

__all__ = ['PdfHandler']


class PdfHandler:
    """Abstract class providing a general interface for querying objects
    in a PDF document."""

    settings: ParserSettings = DEFAULT_PARSER_SETTINGS

    def get_object(self, ref) -> Optional[generic.PdfObject]:
        """
        Retrieve the object associated with the provided reference from
        this PDF handler.

        :param ref:
            An instance of :class:`.generic.Reference`, or an object number.
        :return:
            A PDF object, or ``None`` if the object number is out of range
            or refers to a free object.
        """
        raise NotImplementedError

    @property
    def trailer_view(self) -> generic.DictionaryObject:
        """
        Returns a view of the document trailer of the document represented
        by this :class:`.PdfHandler` instance.

        The view is effectively read-only, in the sense that any writes
        will not be reflected in the actual trailer.

        :return:
            A :class:`.generic.DictionaryObject` representing the current state
            of the document trailer.
        """
        raise NotImplementedError

    @property
    def root_ref(self) -> Optional[generic.Reference]:
        """
        :return:
            A reference to the document catalog of this PDF handler, if there
            is one.
        """
        raise NotImplementedError

    @property
    def root(self) -> generic.DictionaryObject:
        """
        :return: The document catalog of this PDF handler.
        :raises PdfReadError:
            If the trailer has no ``/Root`` entry, or it does not point to
            a dictionary.
        """
        root_ref = self.root_ref
        if root_ref is None:
            raise PdfReadError("Document has no /Root entry in its trailer")
        root = root_ref.get_object()
        if not isinstance(root, generic.DictionaryObject):
            raise PdfReadError(
                f"/Root entry {root_ref} does not point to a dictionary"
            )
        return root
