from typing import Literal


existing_services = Literal[
    "state_fetcher",
    "provisioner",
    "bindings",
]
