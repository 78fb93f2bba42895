from typing import List, Optional, Union

from src.utils.validation import Validator

AD_SYSTEM = "prebid.org wrapper"


def wrap_uri(uri: str, imp_tracker_urls: Optional[Union[str, List[str]]] = None) -> str:
    """
    Wrap a URI that serves VAST XML in a VAST 3.0 Wrapper document.

    Args:
        uri (str): Where the real VAST content can be found.
        imp_tracker_urls: One impression tracker URL, a list of them, or None.

    Returns:
        str: The wrapper document. Identical input gives identical output.
    """
    impressions = "".join(
        f"<Impression>{Validator.cdata(trk)}</Impression>"
        for trk in Validator.as_list(imp_tracker_urls)
    )
    return f"""<VAST version="3.0">
    <Ad>
      <Wrapper>
        <AdSystem>{AD_SYSTEM}</AdSystem>
        <VASTAdTagURI>{Validator.cdata(uri)}</VASTAdTagURI>
        {impressions}
        <Creatives></Creatives>
      </Wrapper>
    </Ad>
  </VAST>"""
