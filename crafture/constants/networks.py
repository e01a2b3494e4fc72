FILECOIN_NETWORKS = {
    "calibration": {
        "rpc_url": "https://api.calibration.node.glif.io/rpc/v1",
        "chain_id": 314159,
        "usdfc_address": "0xb3042734b608a1B16e9e86B374A3f3e389B4cDf0",
        "scanner_url": "https://calibration.filfox.info/en",
    },
    "mainnet": {
        "rpc_url": "https://api.node.glif.io/rpc/v1",
        "chain_id": 314,
        "usdfc_address": "0x80B98d3aa09ffff255c3ba4A241111Ff1262F045",
        "scanner_url": "https://filfox.info/en",
    },
}

CHAIN_ID_TO_NETWORK = {config["chain_id"]: name for name, config in FILECOIN_NETWORKS.items()}

# Warm storage operator used for the Filbeam gateway subdomain
DEFAULT_WARM_STORAGE_ADDRESS = "0x5233e4253bc38e8cf517c0768dbc8acc886f32b3"

FILBEAM_DOMAIN = "filbeam.io"
FILECOIN_URL_SCHEME = "filecoin://"

USDFC_DECIMALS = 18

# Filecoin epochs are 30 seconds
EPOCHS_PER_DAY = 2880
EPOCHS_PER_MONTH = EPOCHS_PER_DAY * 30

# Filecoin storage rejects pieces smaller than this
MIN_UPLOAD_SIZE = 127
