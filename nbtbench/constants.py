from datetime import timedelta


# Magic numbers (first two bytes, big-endian)
GZIP_MAGIC = 0x1F8B
ZLIB_MAGICS = (0x7801, 0x789C, 0x78DA)

# Tag ids
TAG_END = 0
TAG_BYTE = 1
TAG_SHORT = 2
TAG_INT = 3
TAG_LONG = 4
TAG_FLOAT = 5
TAG_DOUBLE = 6
TAG_BYTE_ARRAY = 7
TAG_STRING = 8
TAG_LIST = 9
TAG_COMPOUND = 10
TAG_INT_ARRAY = 11
TAG_LONG_ARRAY = 12

# Nesting limit for compounds/lists, shared by the binary and SNBT codecs.
# Recursive encode, parse and tag comparison must all fit in the default
# interpreter recursion limit at this depth.
MAX_DEPTH = 256

# Little-endian header: u32 storage version || u32 body length
LE_HEADER_SIZE = 8
LE_HEADER_VERSION = 10

# Compression is always performed at maximum ratio
COMPRESSION_LEVEL = 9

# Region compression type bytes (also used as codec ids)
CODEC_GZIP = 1
CODEC_ZLIB = 2
CODEC_NONE = 3
CODEC_LZ4 = 4
CHUNK_EXTERNAL_FLAG = 0x80

# LZ4 blocks: worst-case expansion ratio and the largest size python-lz4 accepts
LZ4_MAX_RATIO = 255
LZ4_MAX_BLOCK_SIZE = 0x7FFFFFFF

# Region geometry
SECTOR_SIZE = 4096
REGION_WIDTH = 32
REGION_CHUNKS = REGION_WIDTH * REGION_WIDTH
REGION_HEADER_SIZE = 2 * SECTOR_SIZE
MAX_CHUNK_SECTORS = 255

REGION_EXTENSIONS = frozenset({"mca", "mcr"})

SAVE_EXTENSIONS = (
    "nbt",
    "snbt",
    "mca",
    "mcr",
    "dat",
    "dat_old",
    "dat_new",
    "dat_mcr",
    "old",
    "schem",
    "schematic",
    "litematic",
    "mcstructure",
)

# Icon atlas keys (x, y) consumed by the renderer
NBT_FILE_TYPE_UV = (192, 240)
GZIP_FILE_TYPE_UV = (208, 240)
ZLIB_FILE_TYPE_UV = (224, 240)
SNBT_FILE_TYPE_UV = (240, 240)
MCA_FILE_TYPE_UV = (96, 192)
LITTLE_ENDIAN_NBT_FILE_TYPE_UV = (160, 240)
LITTLE_ENDIAN_HEADER_NBT_FILE_TYPE_UV = (176, 240)
LZ4_FILE_TYPE_UV = (240, 224)

# Session timings
TAB_CLOSE_DOUBLE_CLICK_INTERVAL = timedelta(seconds=2)

DEFAULT_FILE_NAME = "new.nbt"
DEFAULT_REGION_FILE_NAME = "new.mca"
