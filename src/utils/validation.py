from typing import List, Optional, Union

CDATA_END = "]]>"


class Validator:
    """
    Input sanitation for bid-supplied values that end up inside VAST XML.
    Bidder data is untrusted; these helpers keep it from escaping its element.
    """

    @staticmethod
    def cdata(s: Optional[str]) -> str:
        """
        Wrap a value in a CDATA section.
        A literal ']]>' inside the value is split across two sections so the
        value cannot close the section early.
        """
        if s is None:
            s = ""
        s = str(s)
        if CDATA_END in s:
            s = s.replace(CDATA_END, "]]]]><![CDATA[>")
        return f"<![CDATA[{s}]]>"

    @staticmethod
    def as_list(value: Optional[Union[str, List[str]]]) -> List[str]:
        """Normalize an optional string or list of strings to a list."""
        if not value:
            return []
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        return [str(value)]
