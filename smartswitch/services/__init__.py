# Service layer for the SmartSwitch control surface
# - device_client: async HTTP client for the device endpoints
# - synchronizer:  status/address pulls into the displayed state
# - dispatcher:    validated operator commands and response handling
