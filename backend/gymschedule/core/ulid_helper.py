"""Primary keys for scheduling records.

Ids are ULID strings: 26 characters, sortable by creation time, so rows
created later in a test or a request also sort later.
"""

import ulid


def generate_ulid() -> str:
    return str(ulid.ULID())
