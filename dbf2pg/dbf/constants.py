"""DBF / FPT / DBT format constants, offsets, and magic numbers."""

# Table file header
HEADER_SIZE = 32
HEADER_RECORD_COUNT_OFFSET = 4     # uint32 LE
HEADER_LENGTH_OFFSET = 8           # uint16 LE, total header length incl. descriptors

# Version byte values
VERSION_VISUAL_FOXPRO = 0x30
VFP_BACKLINK_SIZE = 263             # database container backlink after the descriptors

# Field descriptor records
FIELD_DESCRIPTOR_SIZE = 32
FIELD_NAME_LENGTH = 11
FIELD_TYPE_OFFSET = 11
FIELD_LENGTH_OFFSET = 16
FIELD_DECIMALS_OFFSET = 17
FIELD_ARRAY_TERMINATOR_SIZE = 1     # 0x0D

# Records
DELETED_FLAG = b"*"

# Memo files
FPT_POINTER_LENGTH = 4
DBT_POINTER_LENGTH = 10
FPT_BLOCK_SIZE_OFFSET = 6           # uint16 BE
FPT_BLOCK_HEADER_SIZE = 8           # type(4 BE) + length(4 BE)
DBT_BLOCK_SIZE = 0x200
MEMO_TERMINATOR = 0x1A

# Timestamp fields
JULIAN_OFFSET = 1721425             # Julian day number of ordinal day 0
