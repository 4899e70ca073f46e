"""Static directory of data brokers and their opt-out channels.

Keys match ``Exposure.source`` as written by the scan pipeline.
"""

from brokers.base import BrokerInfo


_BROKERS = [
    # Major people search sites
    BrokerInfo(
        key="SPOKEO",
        name="Spokeo",
        category="people_search",
        opt_out_url="https://www.spokeo.com/optout",
        privacy_email="privacy@spokeo.com",
        removal_method="BOTH",
        processing_days=3,
        captcha_type="recaptcha_v2",
        has_cloudflare=True,
        requires_verification=True,
        notes="Requires verification via email link",
    ),
    BrokerInfo(
        key="WHITEPAGES",
        name="WhitePages",
        category="people_search",
        opt_out_url="https://www.whitepages.com/suppression-requests",
        privacy_email="privacy@whitepages.com",
        removal_method="BOTH",
        processing_days=5,
        captcha_type="recaptcha_v2",
        has_cloudflare=True,
        notes="May require phone verification",
    ),
    BrokerInfo(
        key="BEENVERIFIED",
        name="BeenVerified",
        category="background_check",
        opt_out_url="https://www.beenverified.com/opt-out/",
        privacy_email="privacy@beenverified.com",
        removal_method="BOTH",
        processing_days=7,
        captcha_type="recaptcha_v2",
        has_cloudflare=True,
    ),
    BrokerInfo(
        key="INTELIUS",
        name="Intelius",
        category="people_search",
        opt_out_url="https://www.intelius.com/optout",
        privacy_email="privacy@intelius.com",
        removal_method="BOTH",
        processing_days=7,
    ),
    BrokerInfo(
        key="PEOPLEFINDER",
        name="PeopleFinder",
        category="people_search",
        opt_out_url="https://www.peoplefinder.com/optout",
        privacy_email="privacy@peoplefinder.com",
        removal_method="FORM",
        processing_days=5,
    ),
    BrokerInfo(
        key="TRUEPEOPLESEARCH",
        name="TruePeopleSearch",
        category="people_search",
        opt_out_url="https://www.truepeoplesearch.com/removal",
        privacy_email="privacy@truepeoplesearch.com",
        removal_method="FORM",
        processing_days=1,
        has_cloudflare=True,
        notes="Has Cloudflare protection - use email opt-out instead",
    ),
    BrokerInfo(
        key="FASTPEOPLESEARCH",
        name="FastPeopleSearch",
        category="people_search",
        opt_out_url="https://www.fastpeoplesearch.com/removal",
        privacy_email="privacy@fastpeoplesearch.com",
        removal_method="FORM",
        processing_days=1,
        has_cloudflare=True,
    ),
    BrokerInfo(
        key="RADARIS",
        name="Radaris",
        category="people_search",
        opt_out_url="https://radaris.com/control/privacy",
        privacy_email="privacy@radaris.com",
        removal_method="BOTH",
        processing_days=14,
        captcha_type="recaptcha_v2",
        has_cloudflare=True,
        notes="Complex multi-step process",
    ),
    BrokerInfo(
        key="USSEARCH",
        name="USSearch",
        category="people_search",
        opt_out_url="https://www.ussearch.com/opt-out/",
        privacy_email="privacy@ussearch.com",
        removal_method="FORM",
        processing_days=7,
    ),
    BrokerInfo(
        key="INSTANTCHECKMATE",
        name="Instant Checkmate",
        category="background_check",
        opt_out_url="https://www.instantcheckmate.com/opt-out/",
        privacy_email="privacy@instantcheckmate.com",
        removal_method="FORM",
        processing_days=7,
    ),
    BrokerInfo(
        key="PEOPLELOOKER",
        name="PeopleLooker",
        category="background_check",
        opt_out_url="https://www.peoplelooker.com/opt-out",
        privacy_email="privacy@peoplelooker.com",
        removal_method="FORM",
        processing_days=7,
    ),
    BrokerInfo(
        key="THATSTHEM",
        name="ThatsThem",
        category="people_search",
        opt_out_url="https://thatsthem.com/optout",
        privacy_email="privacy@thatsthem.com",
        removal_method="FORM",
        processing_days=3,
    ),
    BrokerInfo(
        key="PUBLICRECORDSNOW",
        name="PublicRecordsNow",
        category="people_search",
        opt_out_url="https://www.publicrecordsnow.com/optout",
        privacy_email="privacy@publicrecordsnow.com",
        removal_method="FORM",
        processing_days=7,
    ),
    BrokerInfo(
        key="FAMILYTREENOW",
        name="FamilyTreeNow",
        category="people_search",
        opt_out_url="https://www.familytreenow.com/optout",
        privacy_email="privacy@familytreenow.com",
        removal_method="FORM",
        processing_days=2,
        has_cloudflare=True,
    ),
    BrokerInfo(
        key="MYLIFE",
        name="MyLife",
        category="people_search",
        opt_out_url="https://www.mylife.com/ccpa/index.pubview",
        privacy_email="privacy@mylife.com",
        removal_method="BOTH",
        processing_days=14,
        has_cloudflare=True,
    ),
    BrokerInfo(
        key="CLUSTRMAPS",
        name="ClustrMaps",
        category="people_search",
        opt_out_url="https://clustrmaps.com/bl/opt-out",
        privacy_email="privacy@clustrmaps.com",
        removal_method="FORM",
        processing_days=5,
    ),
    BrokerInfo(
        key="ADDRESSES_COM",
        name="Addresses.com",
        category="people_search",
        opt_out_url="https://www.addresses.com/optout",
        privacy_email="privacy@addresses.com",
        removal_method="FORM",
        processing_days=7,
    ),
    BrokerInfo(
        key="NEIGHBORWHO",
        name="NeighborWho",
        category="people_search",
        opt_out_url="https://www.neighborwho.com/opt-out",
        privacy_email="privacy@neighborwho.com",
        removal_method="FORM",
        processing_days=7,
    ),
    BrokerInfo(
        key="TRUTHFINDER",
        name="TruthFinder",
        category="background_check",
        opt_out_url="https://www.truthfinder.com/opt-out/",
        privacy_email="privacy@truthfinder.com",
        removal_method="FORM",
        processing_days=14,
    ),
    BrokerInfo(
        key="CHECKPEOPLE",
        name="CheckPeople",
        category="background_check",
        opt_out_url="https://www.checkpeople.com/opt-out",
        privacy_email="privacy@checkpeople.com",
        removal_method="FORM",
        processing_days=7,
    ),
    BrokerInfo(
        key="NUWBER",
        name="Nuwber",
        category="people_search",
        opt_out_url="https://nuwber.com/removal/link",
        privacy_email="privacy@nuwber.com",
        removal_method="FORM",
        processing_days=7,
        captcha_type="hcaptcha",
    ),
    BrokerInfo(
        key="ZABASEARCH",
        name="ZabaSearch",
        category="people_search",
        opt_out_url="https://www.zabasearch.com/block_records/",
        privacy_email="privacy@zabasearch.com",
        removal_method="EMAIL",
        processing_days=14,
    ),
    BrokerInfo(
        key="INFOSPACE",
        name="InfoSpace",
        category="people_search",
        opt_out_url=None,
        privacy_email="privacy@infospace.com",
        removal_method="EMAIL",
        processing_days=14,
    ),
    BrokerInfo(
        key="PEEKYOU",
        name="PeekYou",
        category="people_search",
        opt_out_url="https://www.peekyou.com/about/contact/optout/",
        privacy_email="support@peekyou.com",
        removal_method="BOTH",
        processing_days=10,
        has_cloudflare=True,
    ),
    # B2B and marketing data brokers
    BrokerInfo(
        key="ZOOMINFO",
        name="ZoomInfo",
        category="b2b",
        opt_out_url="https://www.zoominfo.com/update/remove",
        privacy_email="privacy@zoominfo.com",
        removal_method="BOTH",
        processing_days=10,
        requires_verification=True,
    ),
    BrokerInfo(
        key="APOLLO",
        name="Apollo.io",
        category="b2b",
        opt_out_url="https://www.apollo.io/privacy-policy/remove",
        privacy_email="privacy@apollo.io",
        removal_method="EMAIL",
        processing_days=14,
    ),
    BrokerInfo(
        key="ACXIOM",
        name="Acxiom",
        category="marketing",
        opt_out_url="https://isapps.acxiom.com/optout/optout.aspx",
        privacy_email="consumeradvo@acxiom.com",
        removal_method="BOTH",
        processing_days=30,
    ),
    BrokerInfo(
        key="EPSILON",
        name="Epsilon",
        category="marketing",
        opt_out_url="https://legal.epsilon.com/dsr/",
        privacy_email="privacy@epsilon.com",
        removal_method="EMAIL",
        processing_days=30,
    ),
    BrokerInfo(
        key="ORACLE_DATACLOUD",
        name="Oracle Data Cloud",
        category="marketing",
        opt_out_url="https://datacloudoptout.oracle.com/",
        privacy_email="privacy_ww@oracle.com",
        removal_method="BOTH",
        processing_days=30,
    ),
    # Breach databases: monitored only, nothing to remove
    BrokerInfo(
        key="HAVEIBEENPWNED",
        name="Have I Been Pwned",
        category="breach",
        opt_out_url="https://haveibeenpwned.com/OptOut",
        removal_method="MONITOR",
        processing_days=0,
    ),
    BrokerInfo(
        key="DEHASHED",
        name="DeHashed",
        category="breach",
        opt_out_url=None,
        removal_method="MONITOR",
        processing_days=0,
    ),
]

DATA_BROKER_DIRECTORY: dict[str, BrokerInfo] = {broker.key: broker for broker in _BROKERS}


# Data processors act for data controllers and must not receive deletion
# requests directly (GDPR Articles 28/29).
DATA_PROCESSOR_SOURCES = [
    "SYNDIGO",
    "POWERREVIEWS",
    "POWER_REVIEWS",
    "1WORLDSYNC",
    "BAZAARVOICE",
    "YOTPO",
    "YOTPO_DATA",
    "SALSIFY",
    "AKENEO",
    "RIVERSAND",
    "STIBO",
    "CONTENTSERV",
    "INFORMATICA_MDM",
    "TIBCO_MDM",
    "INRIVER",
    "PIMCORE",
    "SALES_LAYER",
    "PLYTIX",
    "CATSY",
    "EGGHEADS",
    "PROFISEE",
    "SEMARCHY",
]

DATA_PROCESSOR_DOMAINS = [
    "syndigo.com",
    "powerreviews.com",
    "1worldsync.com",
    "bazaarvoice.com",
    "yotpo.com",
    "salsify.com",
    "akeneo.com",
]


def get_broker(key: str) -> BrokerInfo | None:
    """Get broker info by source key."""
    return DATA_BROKER_DIRECTORY.get(key)


def list_brokers() -> list[BrokerInfo]:
    """All brokers in the directory."""
    return list(DATA_BROKER_DIRECTORY.values())

