"""Fixed reference lists for the MVCP-BENIN network."""

REGIONS = [
    "Alibori",
    "Atacora",
    "Atlantique nord",
    "Atlantique sud",
    "Borgou",
    "Collines",
    "Couffo",
    "Donga",
    "Littoral",
    "Mono",
    "Ouémé",
    "Plateau",
    "Zou",
]

CELL_CATEGORIES = [
    "Hommes",
    "Femmes",
    "Jeunes",
    "Enfants",
    "Mixte",
]

CELL_STATUSES = [
    "Active",
    "En implantation",
    "En multiplication",
    "En pause",
]
