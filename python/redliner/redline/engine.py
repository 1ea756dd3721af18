import datetime
from typing import Dict, List, Optional

import structlog
from docx.opc.constants import CONTENT_TYPE as CT
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.opc.oxml import CT_Relationships, CT_Types, serialize_part_xml
from docx.oxml import parse_xml
from docx.oxml.coreprops import CT_CoreProperties
from docx.oxml.ns import nsdecls

from redliner.config import GenerationOptions
from redliner.errors import SerializationError
from redliner.models import Document, Paragraph, Run, RunKind
from redliner.redline.comments import CommentsPart, build_summary_paragraphs, plan_inline_comments, summary_lines
from redliner.stats import collect_stats
from redliner.utils.docx import append_run_content, create_attribute, create_element, create_revision_tag

logger = structlog.get_logger(__name__)

DOCUMENT_PART = "word/document.xml"
STYLES_PART = "word/styles.xml"
COMMENTS_PART = "word/comments.xml"
CORE_PROPS_PART = "docProps/core.xml"
CONTENT_TYPES_PART = "[Content_Types].xml"
PACKAGE_RELS_PART = "_rels/.rels"
DOCUMENT_RELS_PART = "word/_rels/document.xml.rels"

_REVISION_TAGS = {
    RunKind.INSERTED: "w:ins",
    RunKind.DELETED: "w:del",
}

# Default paragraph and character styles only; Word fills in the rest.
_STYLES_XML = (
    f"<w:styles {nsdecls('w')}>"
    "<w:docDefaults>"
    "<w:rPrDefault><w:rPr>"
    '<w:rFonts w:ascii="Calibri" w:hAnsi="Calibri" w:eastAsia="Calibri" w:cs="Calibri"/>'
    '<w:sz w:val="22"/><w:szCs w:val="22"/><w:lang w:val="en-US"/>'
    "</w:rPr></w:rPrDefault>"
    '<w:pPrDefault><w:pPr><w:spacing w:after="160" w:line="259" w:lineRule="auto"/></w:pPr></w:pPrDefault>'
    "</w:docDefaults>"
    '<w:style w:type="paragraph" w:default="1" w:styleId="Normal">'
    '<w:name w:val="Normal"/><w:qFormat/>'
    "</w:style>"
    '<w:style w:type="character" w:default="1" w:styleId="DefaultParagraphFont">'
    '<w:name w:val="Default Paragraph Font"/><w:uiPriority w:val="1"/><w:semiHidden/><w:unhideWhenUsed/>'
    "</w:style>"
    "</w:styles>"
)

# A4 with one-inch margins
_SECTION_XML = (
    f"<w:sectPr {nsdecls('w')}>"
    '<w:pgSz w:w="11906" w:h="16838"/>'
    '<w:pgMar w:top="1440" w:right="1440" w:bottom="1440" w:left="1440"'
    ' w:header="708" w:footer="708" w:gutter="0"/>'
    "</w:sectPr>"
)


class DocumentBuilder:
    """
    Serializes a mapped Document into the parts of a WordprocessingML package.
    build() returns {part name: xml bytes}; part names carry no leading slash.
    """

    def __init__(self, document: Document, options: Optional[GenerationOptions] = None):
        self.document = document
        self.options = options or GenerationOptions()
        self.author = document.author
        self.date = document.date
        self.comments: Optional[CommentsPart] = None

    def build(self) -> Dict[str, bytes]:
        try:
            document_xml = self._build_document_xml()
            parts = {
                CONTENT_TYPES_PART: self._build_content_types(),
                PACKAGE_RELS_PART: self._build_package_rels(),
                CORE_PROPS_PART: self._build_core_properties(),
                DOCUMENT_PART: document_xml,
                DOCUMENT_RELS_PART: self._build_document_rels(),
                STYLES_PART: serialize_part_xml(parse_xml(_STYLES_XML)),
            }
            if self.comments is not None:
                parts[COMMENTS_PART] = serialize_part_xml(self.comments.element)
        except ValueError as e:
            # lxml rejects control characters and other text XML 1.0 cannot carry
            raise SerializationError(f"Could not serialize document: {e}") from e

        logger.debug("Built package parts", parts=list(parts))
        return parts

    # --- word/document.xml ---

    def _comments_part(self) -> CommentsPart:
        if self.comments is None:
            self.comments = CommentsPart(self.author, self.date)
        return self.comments

    def _build_document_xml(self) -> bytes:
        root = parse_xml(f"<w:document {nsdecls('w', 'r')}><w:body/></w:document>")
        body = root.body

        if self.options.summary_comment and self.document.revision_count > 0:
            stats = collect_stats(self.document)
            comment_id = self._comments_part().add_comment(summary_lines(stats, self.date))
            for p in build_summary_paragraphs(comment_id):
                body.append(p)

        for paragraph in self.document.paragraphs:
            body.append(self._build_paragraph(paragraph))

        body.append(parse_xml(_SECTION_XML))
        return serialize_part_xml(root)

    def _build_paragraph(self, paragraph: Paragraph):
        p = create_element("w:p")

        if paragraph.mark != RunKind.UNCHANGED:
            # Tracked paragraph mark: w:pPr/w:rPr/(w:ins|w:del)
            pPr = create_element("w:pPr")
            rPr = create_element("w:rPr")
            rPr.append(
                create_revision_tag(_REVISION_TAGS[paragraph.mark], paragraph.mark_revision_id, self.author, self.date)
            )
            pPr.append(rPr)
            p.append(pPr)

        elements = []
        for run in paragraph.runs:
            element = self._build_run(run)
            elements.append(element)
            if element is not None:
                p.append(element)

        if self.options.inline_comments:
            # Planned ranges only cover revision runs, which always render
            for planned in plan_inline_comments(paragraph):
                self._attach_comment(p, elements[planned.start], elements[planned.end], planned.lines)
        return p

    def _attach_comment(self, p, start_element, end_element, lines: List[str]):
        comment_id = self._comments_part().add_comment(lines)
        range_start = create_element("w:commentRangeStart")
        create_attribute(range_start, "w:id", comment_id)
        range_end = create_element("w:commentRangeEnd")
        create_attribute(range_end, "w:id", comment_id)

        ref_run = create_element("w:r")
        ref = create_element("w:commentReference")
        create_attribute(ref, "w:id", comment_id)
        ref_run.append(ref)

        p.insert(p.index(start_element), range_start)
        end_index = p.index(end_element)
        p.insert(end_index + 1, range_end)
        p.insert(end_index + 2, ref_run)

    def _build_run(self, run: Run):
        if run.kind == RunKind.UNCHANGED:
            if not run.text:
                return None
            return append_run_content(create_element("w:r"), run.text)

        r = append_run_content(create_element("w:r"), run.text, deleted=run.kind == RunKind.DELETED)
        tag = create_revision_tag(
            _REVISION_TAGS[run.kind],
            run.revision_id,
            run.author or self.author,
            run.date or self.date,
        )
        tag.append(r)
        return tag

    # --- Package plumbing ---

    def _build_content_types(self) -> bytes:
        types = CT_Types.new()
        types.add_default("rels", CT.OPC_RELATIONSHIPS)
        types.add_default("xml", CT.XML)
        types.add_override("/" + DOCUMENT_PART, CT.WML_DOCUMENT_MAIN)
        types.add_override("/" + STYLES_PART, CT.WML_STYLES)
        types.add_override("/" + CORE_PROPS_PART, CT.OPC_CORE_PROPERTIES)
        if self.comments is not None:
            types.add_override("/" + COMMENTS_PART, CT.WML_COMMENTS)
        return serialize_part_xml(types)

    def _build_package_rels(self) -> bytes:
        rels = CT_Relationships.new()
        rels.add_rel("rId1", RT.OFFICE_DOCUMENT, DOCUMENT_PART)
        rels.add_rel("rId2", RT.CORE_PROPERTIES, CORE_PROPS_PART)
        return serialize_part_xml(rels)

    def _build_document_rels(self) -> bytes:
        # Targets are relative to word/
        rels = CT_Relationships.new()
        rels.add_rel("rId1", RT.STYLES, "styles.xml")
        if self.comments is not None:
            rels.add_rel("rId2", RT.COMMENTS, "comments.xml")
        return serialize_part_xml(rels)

    def _build_core_properties(self) -> bytes:
        try:
            stamp = datetime.datetime.strptime(self.date, "%Y-%m-%dT%H:%M:%SZ")
        except ValueError:
            stamp = datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0, tzinfo=None)

        props = CT_CoreProperties.new()
        props.author_text = self.author
        props.lastModifiedBy_text = self.author
        props.created_datetime = stamp
        props.modified_datetime = stamp
        return serialize_part_xml(props)
