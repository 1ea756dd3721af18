"""
Low-level helpers for WordprocessingML elements.
Writing side: element/attribute factories on top of python-docx's oxml layer.
Reading side: iterators that walk tracked-change markup of an opened document.
"""

from typing import Iterator, NamedTuple, Optional, Union

from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.text.paragraph import Paragraph
from docx.text.run import Run


# --- Types ---
class DocxEvent(NamedTuple):
    type: str  # 'ins_start', 'ins_end', 'del_start', 'del_end', 'ref' (comment reference)
    id: str
    author: Optional[str] = None
    date: Optional[str] = None


ParagraphItem = Union[Run, DocxEvent]


# --- Writing ---


def create_element(name: str):
    return OxmlElement(name)


def create_attribute(element, name: str, value: str):
    element.set(qn(name), value)


def set_text_content(element, text: str):
    """Sets element text; Word drops unpreserved leading/trailing whitespace."""
    element.text = text
    if text.strip() != text:
        create_attribute(element, "xml:space", "preserve")


def create_revision_tag(tag_name: str, revision_id: int, author: str, date: str):
    tag = create_element(tag_name)
    create_attribute(tag, "w:id", str(revision_id))
    create_attribute(tag, "w:author", author)
    create_attribute(tag, "w:date", date)
    return tag


def append_run_content(run_element, text: str, deleted: bool = False):
    """
    Appends text to a w:r, splitting on newlines and tabs.
    Newlines become w:br, tabs become w:tab, everything else goes into
    w:t (or w:delText for deleted runs).
    """
    text_tag = "w:delText" if deleted else "w:t"
    buffer = ""
    i = 0
    while i < len(text):
        ch = text[i]
        is_crlf = ch == "\r" and i + 1 < len(text) and text[i + 1] == "\n"
        if ch in "\n\t" or is_crlf:
            if buffer:
                t = create_element(text_tag)
                set_text_content(t, buffer)
                run_element.append(t)
                buffer = ""
            if ch == "\t":
                run_element.append(create_element("w:tab"))
            else:
                # \r\n is one soft break; a lone \r stays text
                if is_crlf:
                    i += 1
                run_element.append(create_element("w:br"))
        else:
            buffer += ch
        i += 1

    if buffer or len(run_element) == 0:
        t = create_element(text_tag)
        set_text_content(t, buffer)
        run_element.append(t)
    return run_element


# --- Reading ---


def iter_paragraph_content(paragraph: Paragraph) -> Iterator[ParagraphItem]:
    """
    Iterates over the content of a paragraph, yielding Runs and revision events.
    Runs inside w:ins / w:del are bracketed by start/end events so callers
    can reconstruct either side of the change.
    """
    for child in paragraph._element:
        tag = child.tag
        if tag == qn("w:r"):
            for sub in child:
                if sub.tag == qn("w:commentReference"):
                    yield DocxEvent("ref", sub.get(qn("w:id")))
            yield Run(child, paragraph)

        elif tag in (qn("w:ins"), qn("w:del")):
            kind = "ins" if tag == qn("w:ins") else "del"
            rev_id = child.get(qn("w:id"))
            yield DocxEvent(f"{kind}_start", rev_id, child.get(qn("w:author")), child.get(qn("w:date")))
            for subchild in child:
                if subchild.tag == qn("w:r"):
                    yield Run(subchild, paragraph)
            yield DocxEvent(f"{kind}_end", rev_id)


def get_paragraph_mark_revision(paragraph: Paragraph) -> Optional[str]:
    """Returns 'ins' or 'del' when the paragraph mark itself is tracked."""
    pPr = paragraph._element.pPr
    if pPr is None:
        return None
    rPr = pPr.find(qn("w:rPr"))
    if rPr is None:
        return None
    if rPr.find(qn("w:ins")) is not None:
        return "ins"
    if rPr.find(qn("w:del")) is not None:
        return "del"
    return None


def get_run_text(run: Run) -> str:
    """
    Extracts text from a run, converting <w:tab/> to tabs and <w:br/> to newlines.
    Standard run.text treats w:delText as absent.
    """
    text = ""
    for child in run._element:
        if child.tag in (qn("w:t"), qn("w:delText")):
            text += child.text or ""
        elif child.tag == qn("w:tab"):
            text += "\t"
        elif child.tag in (qn("w:br"), qn("w:cr")):
            text += "\n"
    return text

