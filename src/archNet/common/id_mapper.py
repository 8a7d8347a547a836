"""
ID mapping utilities for the archNet library.

networkit graphs address nodes by consecutive integers (0, 1, 2, ...), while
assemblage data identifies sites by names or catalogue numbers. IDMapper keeps
the two in step so every result can be reported with the original site ids.
"""

from typing import Any, Dict, Iterable, List


class IDMapper:
    """
    Bidirectional mapping between site identifiers and networkit node ids.

    Attributes
    ----------
    original_to_internal : Dict[Any, int]
        Maps site identifiers to networkit node ids
    internal_to_original : Dict[int, Any]
        Maps networkit node ids to site identifiers

    Examples
    --------
    >>> mapper = IDMapper.from_ids(["Site B", "Site A"])
    >>> mapper.get_internal("Site A")
    0
    >>> mapper.get_original(1)
    'Site B'

    Notes
    -----
    Site identifiers may themselves be integers, so membership tests
    (``x in mapper``) only look at site identifiers. Use has_internal() for
    networkit ids.
    """

    def __init__(self) -> None:
        self.original_to_internal: Dict[Any, int] = {}
        self.internal_to_original: Dict[int, Any] = {}

    @classmethod
    def from_ids(cls, original_ids: Iterable[Any]) -> 'IDMapper':
        """
        Build a mapper from site identifiers, numbered in sorted order.

        Parameters
        ----------
        original_ids : Iterable[Any]
            Site identifiers. Duplicates are collapsed.

        Returns
        -------
        IDMapper
            Mapper where the smallest identifier gets node id 0

        Raises
        ------
        TypeError
            If the identifiers cannot be sorted against each other
        """
        mapper = cls()
        for internal_id, original_id in enumerate(sorted(set(original_ids))):
            mapper.add_mapping(original_id, internal_id)
        return mapper

    def get_internal(self, original_id: Any) -> int:
        """
        Get the networkit node id for a site identifier.

        Raises
        ------
        KeyError
            If original_id is not in the mapping
        """
        try:
            return self.original_to_internal[original_id]
        except KeyError:
            raise KeyError(f"Original ID '{original_id}' not found in mapping")

    def get_original(self, internal_id: int) -> Any:
        """
        Get the site identifier for a networkit node id.

        Raises
        ------
        KeyError
            If internal_id is not in the mapping
        TypeError
            If internal_id is not an integer
        """
        if not isinstance(internal_id, int):
            raise TypeError(f"Internal ID must be integer, got {type(internal_id)}")

        try:
            return self.internal_to_original[internal_id]
        except KeyError:
            raise KeyError(f"Internal ID {internal_id} not found in mapping")

    def get_internal_batch(self, original_ids: List[Any]) -> List[int]:
        """Get networkit node ids for a list of site identifiers."""
        if not isinstance(original_ids, list):
            raise TypeError(f"original_ids must be a list, got {type(original_ids)}")

        return [self.get_internal(original_id) for original_id in original_ids]

    def get_original_batch(self, internal_ids: List[int]) -> List[Any]:
        """Get site identifiers for a list of networkit node ids."""
        if not isinstance(internal_ids, list):
            raise TypeError(f"internal_ids must be a list, got {type(internal_ids)}")

        return [self.get_original(internal_id) for internal_id in internal_ids]

    def add_mapping(self, original_id: Any, internal_id: int) -> None:
        """
        Add a new ID mapping pair.

        Parameters
        ----------
        original_id : Any
            Site identifier (must be hashable)
        internal_id : int
            networkit node id (non-negative integer)

        Raises
        ------
        ValueError
            If either id is already mapped, or internal_id is negative
        TypeError
            If internal_id is not an integer or original_id is not hashable
        """
        if not isinstance(internal_id, int) or isinstance(internal_id, bool):
            raise TypeError(f"Internal ID must be integer, got {type(internal_id)}")

        if internal_id < 0:
            raise ValueError(f"Internal ID must be non-negative, got {internal_id}")

        try:
            hash(original_id)
        except TypeError:
            raise TypeError(f"Original ID must be hashable, got {type(original_id)}")

        if original_id in self.original_to_internal:
            existing_internal = self.original_to_internal[original_id]
            raise ValueError(
                f"Original ID '{original_id}' already mapped to internal ID {existing_internal}"
            )

        if internal_id in self.internal_to_original:
            existing_original = self.internal_to_original[internal_id]
            raise ValueError(
                f"Internal ID {internal_id} already mapped to original ID '{existing_original}'"
            )

        self.original_to_internal[original_id] = internal_id
        self.internal_to_original[internal_id] = original_id

    def size(self) -> int:
        """Number of mapped sites."""
        return len(self.original_to_internal)

    def original_ids(self) -> List[Any]:
        """Site identifiers ordered by networkit node id."""
        return [self.internal_to_original[i] for i in sorted(self.internal_to_original)]

    def to_dict(self) -> Dict[str, Dict]:
        """
        Export mapping as dictionary for serialization.

        The reverse mapping uses string keys so the result can be written as
        JSON; from_dict() converts them back.
        """
        return {
            'original_to_internal': dict(self.original_to_internal),
            'internal_to_original': {str(k): v for k, v in self.internal_to_original.items()}
        }

    @classmethod
    def from_dict(cls, mapping: Dict[str, Dict]) -> 'IDMapper':
        """
        Create an IDMapper from the output of to_dict().

        Raises
        ------
        KeyError
            If required keys are missing
        ValueError
            If the two directions disagree
        """
        try:
            original_to_internal = mapping['original_to_internal']
            internal_to_original_str = mapping['internal_to_original']
        except KeyError as e:
            raise KeyError(f"Missing required key in mapping dictionary: {e}")

        try:
            internal_to_original = {int(k): v for k, v in internal_to_original_str.items()}
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid internal ID in mapping: {e}")

        if len(original_to_internal) != len(internal_to_original):
            raise ValueError(
                f"Inconsistent mapping sizes: {len(original_to_internal)} vs {len(internal_to_original)}"
            )

        mapper = cls()
        for original_id, internal_id in original_to_internal.items():
            if internal_to_original.get(internal_id, object()) != original_id:
                raise ValueError(
                    f"Inconsistent mapping: original '{original_id}' -> {internal_id} "
                    f"has no matching reverse entry"
                )
            mapper.add_mapping(original_id, internal_id)

        return mapper

    def is_empty(self) -> bool:
        return len(self.original_to_internal) == 0

    def has_original(self, original_id: Any) -> bool:
        return original_id in self.original_to_internal

    def has_internal(self, internal_id: int) -> bool:
        return internal_id in self.internal_to_original

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, item: Any) -> bool:
        return self.has_original(item)

    def __repr__(self) -> str:
        return f"IDMapper(size={self.size()})"
