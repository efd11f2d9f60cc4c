"""poolshift: GKE node-pool upgrade runbooks (blue/green and expand/contract)."""

import warnings

# The Google SDK emits FutureWarning noise about interpreter support on import.
warnings.filterwarnings("ignore", category=FutureWarning, module="google.api_core")
warnings.filterwarnings("ignore", category=FutureWarning, module="google.cloud")
