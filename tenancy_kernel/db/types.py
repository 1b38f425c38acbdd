"""
Module: tenancy_kernel.db.types
Responsibility: Annotated type aliases and column-type helpers shared by every
    ORM model, so money, labels and enum columns are declared identically.
Architecture position: Kernel > DB.  MUST NOT import from models/, store/,
    services/ or selectors/.

Invariants enforced:
    - No floats: money is Numeric(18, 2), metered units Numeric(18, 3).
    - Enum columns store the enum VALUE as a plain string (no native DB
      enum type) and load back as enum members.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated

from sqlalchemy import Enum as SAEnum, Numeric, String

# Monetary amount, two decimal places
Money = Annotated[Decimal, Numeric(18, 2)]

# Metered consumption (electricity / water units)
Units = Annotated[Decimal, Numeric(18, 3)]

# Short labels (month names, id proof types, cities)
ShortText = Annotated[str, String(100)]

# Names and titles
NameText = Annotated[str, String(255)]

# Long text for descriptions and messages
LongText = Annotated[str, String(4000)]


def enum_type(enum_cls: type[Enum], length: int = 20) -> SAEnum:
    """Non-native enum column type persisting ``member.value``."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        create_constraint=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
