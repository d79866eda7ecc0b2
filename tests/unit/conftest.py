from stack_test_helpers import json_template, template  # noqa: F401
from topology_test_helpers import assembler, inventory, store  # noqa: F401
