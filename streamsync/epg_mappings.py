"""Static channel id → EPG provider code tables."""

from __future__ import annotations

# guiadetv.com slugs, for channels missing or broken on meuguia.tv.
GUIADETV_CHANNEL_SLUGS: dict[str, str] = {
    "hbo-pop": "hbo-pop",
    "hbo-xtreme": "hbo-xtreme",
    "hbo-mundi": "hbo-mundi",
    "cnn-brasil": "cnn-brasil",
    "cartoonito": "cartoonito",
}

# meuguia.tv channel codes.
MEUGUIA_CHANNEL_CODES: dict[str, str] = {
    # Telecine
    "telecine-action": "TC2",
    "telecine-premium": "TC1",
    "telecine-pipoca": "TC4",
    "telecine-cult": "TC5",
    "telecine-fun": "TC6",
    "telecine-touch": "TC3",
    # HBO
    "hbo": "HBO",
    "hbo2": "HB2",
    "hbo-family": "HFA",
    "hbo-plus": "HPL",
    # Globo
    "globo-sp": "GRD",
    "globo-rj": "GRD",
    "globo-mg": "GRD",
    "globo-rs": "GRD",
    "globo-es": "GRD",
    "globo-am": "GRD",
    "globo-news": "GLN",
    # SporTV
    "sportv": "SPO",
    "sportv2": "SP2",
    "sportv3": "SP3",
    # ESPN
    "espn": "ESP",
    "espn2": "ES2",
    "espn3": "ES3",
    "espn4": "ES4",
    "espn5": "ES5",
    # Free-to-air
    "sbt": "SBT",
    "band": "BAN",
    "record": "REC",
    "rede-tv": "RTV",
    "tv-brasil": "TBR",
    "cultura": "CUL",
    # Kids
    "cartoon-network": "CAR",
    "discovery-kids": "DIK",
    "gloob": "GOB",
    "nickelodeon": "NIC",
    # Documentaries
    "discovery": "DIS",
    "history": "HIS",
    "history2": "HI2",
    "animal-planet": "APL",
    "discovery-hh": "DHH",
    "discovery-id": "DID",
    "discovery-science": "DSC",
    "discovery-turbo": "DTU",
    "food-network": "FOD",
    "tlc": "TLC",
    "hgtv": "HGT",
    # Series
    "warner": "WBT",
    "tnt": "TNT",
    "tnt-series": "TBS",
    "tnt-novelas": "TNV",
    "axn": "AXN",
    "sony": "SON",
    "universal-tv": "UNI",
    "ae": "A&E",
    "amc": "AMC",
    # Movies
    "tcm": "TCM",
    "space": "SPA",
    "cinemax": "CMX",
    "megapix": "MGP",
    "studio-universal": "STU",
    # Sports
    "premiere": "121",
    "premiere2": "122",
    "premiere3": "123",
    "premiere4": "124",
    "combate": "135",
    "band-sports": "BSP",
    # Entertainment
    "multishow": "MUL",
    "bis": "BIS",
    "viva": "VIV",
    "off": "OFF",
    "gnt": "GNT",
    "arte1": "AR1",
    # News
    "band-news": "BNW",
    "record-news": "RNW",
}

# mi.tv slugs, last resort for channels neither guide above covers.
MITV_CHANNEL_SLUGS: dict[str, str] = {
    "curta": "curta",
    "discovery-world": "discovery-world",
    "adult-swim": "adult-swim",
    "hbo-signature": "hbo-signature",
    "paramount-network": "paramount-network",
    "canal-brasil": "canal-brasil",
    "national-geographic": "national-geographic",
    "lifetime": "lifetime",
}
