"""Curated maintenance taxonomy offered when logging service items.

Item types are free text, these are the suggestions grouped by category.
"""

SERVICE_CATEGORIES = {
    "Oljeservice": ["Motorolja", "Oljefilter"],
    "Bromsservice": ["Bromsbelägg", "Bromsskivor", "Bromsvätska"],
    "Filter": ["Luftfilter", "Kupéfilter", "Bränslefilter"],
    "Tändsystem": ["Tändstift", "Tändspolar"],
    "Kylsystem": ["Kylvätskebyte", "Termostat", "Vattenpump"],
    "Chassi & slitdelar": [
        "Däckbyte (sommar/vinter)",
        "Däckrotation",
        "Hjulinställning",
        "Stötdämpare",
        "Fjädrar",
        "Hjullager",
    ],
    "Drivlina": ["Växellådsolja (manuell / automat)", "Koppling", "Drivaxlar", "Differentialolja"],
    "El & elektronik": ["Batteribyte", "Generator", "Startmotor", "Lampor", "Säkringar"],
    "Vätskor & kontroller": [
        "Servoolja",
        "Spolarvätska",
        "AC-service (påfyllning / läcktest)",
        "Bromsvätskekontroll",
    ],
    "Service & kontroller": [
        "Årlig service",
        "Inspektion",
        "Besiktning (för- / efterkontroll)",
        "Diagnos / felkoder (DTC)",
    ],
    "Kaross & komfort": ["Rostskydd", "Vindruta", "Torkarblad", "Lås & gångjärn (smörjning)"],
}