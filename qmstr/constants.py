"""Environment variable names and fixed paths shared by the qmstr tools."""

# Connection string of the qmstr-master server.
QMSTR_ADDR_ENV = "QMSTR_MASTER"
# Set when qmstr runs in debug mode.
QMSTR_DEBUG_ENV = "QMSTR_DEBUG"
# Path to the ccache cache directory.
CCACHE_DIR_ENV = "CCACHE_DIR"
# Set while the gcc wrapper runs, so that nested as/ld calls are skipped.
QMSTR_WRAP_GCC_ENV = "QMSTR_WRAPPING_GCC"

# Where the source code is mounted in the qmstr-master container.
CONTAINER_BUILD_DIR = "/buildroot"
# Where the ccache directory is mounted.
CONTAINER_CCACHE_DIR = "/ccache"
# HOME of the user running a client container.
CONTAINER_QMSTR_HOME_DIR = "/home/qmstruser"

CONTAINER_GRAPH_EXPORT_DIR = "/var/qmstr/export"
CONTAINER_GRAPH_IMPORT_PATH = "/var/qmstr/qmstr.import.tar"

# Directory where pushed files are stored.
CONTAINER_PUSH_FILES_DIR_NAME = "QMSTR_pushedfiles"