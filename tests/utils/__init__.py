# tests/utils/__init__.py

from .config_validate import make_summary
from .constants import DEFAULT_TEST_LOG_LEVEL, PROJ_ROOT
from .force_mtime_advance import force_mtime_advance
from .package import make_fake_dependency, make_test_package
from .patch_everywhere import patch_everywhere
from .project import make_config_project, write_config_file
from .test_trace import TEST_TRACE, make_test_trace


__all__ = [  # noqa: RUF022
    # config_validate
    "make_summary",
    # constants
    "PROJ_ROOT",
    "DEFAULT_TEST_LOG_LEVEL",
    # force_mtime_advance
    "force_mtime_advance",
    # package
    "make_fake_dependency",
    "make_test_package",
    # patch_everywhere
    "patch_everywhere",
    # project
    "make_config_project",
    "write_config_file",
    # test_trace
    "TEST_TRACE",
    "make_test_trace",
]
