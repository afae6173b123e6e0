"""
Memory fault: overload through the stress tool's vm stressors.
"""

from faults.stress import StressFault


class MemoryOverload(StressFault):
    fault_type = 'memory-overload'
    module = 'memory'
    # Keep the mapping resident and populated so the pages are really used
    private_args = ('--vm-keep', '--vm-populate')
