"""
Integration Tests Package for the Parkline parking lot

These tests drive several components together:
1. ParkingService + AllocationEngine + EventBus
2. Command processing flow
3. The interactive console, fed from an in-memory stream
4. The command-line entry point with YAML configuration
"""

import sys
from pathlib import Path

# Add the src directory to the Python path for imports
src_root = Path(__file__).resolve().parents[2] / "src"
sys.path.insert(0, str(src_root))

TEST_CATEGORIES = {
    "service_layer": "Service layer integration tests",
    "command_processor": "Command processor integration tests",
    "console": "Interactive console tests",
    "entry_point": "Command-line entry point tests",
}
