# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Markup identifiers and response markers of the NEMIS portal.

Every literal control name, element id, page path and confirmation string the
rest of the package depends on lives here. When the portal's markup changes,
this module and the extractor are the only places that need to follow.
"""

import re

CONTENT_PREFIX = "ctl00$ContentPlaceHolder1$"
CONTENT_ID_PREFIX = "ctl00_ContentPlaceHolder1_"


def control(name: str) -> str:
    """Return the posted form name of a content-area control."""
    return f"{CONTENT_PREFIX}{name}"


def element(name: str) -> str:
    """Return a CSS selector for a content-area element id."""
    return f"#{CONTENT_ID_PREFIX}{name}"


def update_panel_trigger(trigger: str) -> str:
    """Return the ScriptManager value for an async postback fired by ``trigger``."""
    return f"{control('UpdatePanel1')}|{control(trigger)}"


# Hidden fields replayed on every postback. Names must be reproduced exactly.
EVENT_TARGET = "__EVENTTARGET"
EVENT_ARGUMENT = "__EVENTARGUMENT"
LAST_FOCUS = "__LASTFOCUS"
VIEW_STATE = "__VIEWSTATE"
VIEW_STATE_GENERATOR = "__VIEWSTATEGENERATOR"
VIEW_STATE_ENCRYPTED = "__VIEWSTATEENCRYPTED"
EVENT_VALIDATION = "__EVENTVALIDATION"
ASYNC_POST = "__ASYNCPOST"
SCRIPT_MANAGER = control("ScriptManager1")


class Paths:
    """Portal page paths."""

    HOME = "/"
    LOGIN = "/Login.aspx"
    INSTITUTION = "/Institution/Institution.aspx"
    LEARNERS = "/Learner/Listlearners.aspx"
    BIODATA = "/Learner/alearner.aspx"
    STUDENT_INDEX = "/Learner/Studindex.aspx"
    STUDENT_INDEX_CHECK = "/Learner/Studindexchk.aspx"
    STUDENT_INDEX_REQUEST = "/Learner/Studindexreq.aspx"
    TRANSFER_RECEIVE = "/Learner/StudReceive.aspx"
    REQUESTED_JOINERS = "/Learner/Liststudreq.aspx"
    APPROVED_JOINERS = "/Learner/Liststudreqa.aspx"
    SELECTED_JOINERS = "/Admission/Listlearners.aspx"
    ADMITTED_JOINERS = "/Admission/Listlearnersrep.aspx"
    CONTINUING_REQUESTS = "/Learner/Listadmrequestsskul.aspx"
    CONTINUING_PENDING = "/Learner/Listadmrequestsskulapp.aspx"


class Elements:
    """CSS selectors for elements read from rendered pages."""

    LEARNER_GRID = element("grdLearners")
    ERROR_MESSAGE = element("ErrorMessage")
    INSTITUTION_MESSAGE = element("instmessage")
    NHIF_MESSAGE = "#LblMsgContact"
    IGNORE_DIALOG = element("MyDiag")
    ALERT = ".alert"
    UPI_INPUT = "#UPI"
    CAN_ADMIT = "#txtCanAdmt"
    CAN_REQUEST = "#txtCanReq"
    CATEGORY_SELECT = "#SelectCat"
    # First view button of the learner listing, 13th column of a data row.
    VIEW_BUTTON = "tr.GridRow > td:nth-child(13) > a"
    ROW_SUBMIT = "input"


class Controls:
    """Posted form control names."""

    LOGIN_BUTTON = control("Login1$LoginButton")
    LOGIN_USERNAME = control("Login1$UserName")
    LOGIN_PASSWORD = control("Login1$Password")

    SELECT_RECORDS = control("SelectRecs")
    SELECT_CATEGORY = control("SelectCat")
    SELECT_CATEGORY_2 = control("SelectCat2")
    SELECT_BIRTH_CERTIFICATE = control("SelectBC")
    LEARNER_GRID = control("grdLearners")

    ADMIT_BUTTON = control("BtnAdmit")
    COUNTY = control("ddlcounty")
    SUB_COUNTY = control("ddlsubcounty")
    SAVE_BIODATA = control("btnUsers2")
    IGNORE_OPTION = control("optignore")
    ADD_STUDENT = control("Button1")
    SAVE_STUDENT = control("Button2")
    SUBMIT_NHIF = control("BtnNHIF")


class IndexForm:
    """Admission and placement request forms (Studindex, Studindexchk, Studindexreq)."""

    ADMIT_FLAG = control("txtAdmt")
    CAN_ADMIT = control("txtCanAdmt")
    CAN_REQUEST = control("txtCanReq")
    REQUEST_FLAG = control("txtReq")
    GENDER = control("txtGender")
    INDEX = control("txtIndex")
    MARKS = control("txtMarks")
    NAME = control("txtName")
    SCHOOL_NAME = control("txtSName")
    SCHOOL_NAME_2 = control("txtSName2")
    SCHOOL = control("txtSchool")
    SEARCH = control("txtSearch")
    STATUS = control("txtStatus")
    BIRTH_CERTIFICATE = control("txtBCert")
    UPI = control("txtUPI")
    FILE_NO = control("txtFileNo")
    PARENT_ID = control("txtIDNo")
    PARENT_PHONE = control("txtPhone")
    REQUESTED_BY = control("txtWReq")

    ADMIT = "Admit Student"
    REQUEST = "Request Placement"
    APPLY = "Apply"


class TransferForm:
    """Transfer-in form (StudReceive)."""

    REASON = control("DrpReason")
    SEARCH_BUTTON = control("SearchCmd")
    REMARK = control("txtRemark")
    SEARCH = control("txtSearch")

    DEFAULT_REASON = "1"
    CHECK = "CHECK"
    SAVE = "[ SAVE ]"


class BiodataForm:
    """Learner biodata form (alearner)."""

    BIRTH_CERTIFICATE = control("Birth_Cert_No")
    DOB = control("DOB$ctl00")
    GENDER = control("Gender")
    FIRST_NAME = control("FirstName")
    NATIONALITY = control("Nationality")
    OTHER_NAMES = control("OtherNames")
    SURNAME = control("Surname")
    UPI = control("UPI")
    GRADE = control("ddlClass")
    MEDICAL_CONDITION = control("ddlmedicalcondition")
    MY_DOB = control("mydob")
    MY_IMAGE = control("myimage")
    POSTAL_ADDRESS = control("txtPostalAddress")
    SEARCH = control("txtSearch")
    MOBILE = control("txtmobile")
    SPECIAL_NEEDS = control("optspecialneed")
    EMAIL = control("txtEmailAddress")

    # Contact role -> (name, id, tel, upi) controls.
    CONTACTS = {
        "father": (
            control("txtFatherName"),
            control("txtFatherIDNO"),
            control("txtFatherContacts"),
            control("txtFatherUPI"),
        ),
        "guardian": (
            control("txtGuardianname"),
            control("txtGuardianIDNO"),
            control("txtGuardiancontacts"),
            control("txtGuardianUPI"),
        ),
        "mother": (
            control("txtMotherName"),
            control("txtMotherIDNo"),
            control("txtMothersContacts"),
            control("txtMotherUPI"),
        ),
    }

    HAS_SPECIAL_NEEDS = "optspecialneed"
    NO_SPECIAL_NEEDS = "optneedsno"
    SAVE = "Save Basic Details"
    IGNORE = "optignoreyes"
    UNSET_SUB_COUNTY = "0"
    SUBMIT_NHIF = "SUBMIT TO NHIF"

    # Controls replayed from the rendered form when submitting to NHIF.
    REPLAYED = (
        BIRTH_CERTIFICATE,
        DOB,
        FIRST_NAME,
        GENDER,
        NATIONALITY,
        OTHER_NAMES,
        SURNAME,
        UPI,
        Controls.COUNTY,
        MEDICAL_CONDITION,
        Controls.SUB_COUNTY,
        MY_DOB,
        MY_IMAGE,
        SPECIAL_NEEDS,
        EMAIL,
        *CONTACTS["father"],
        *CONTACTS["guardian"],
        *CONTACTS["mother"],
        POSTAL_ADDRESS,
        SEARCH,
        MOBILE,
    )


class ContinuingForm:
    """Continuing learner request form (Listadmrequestsskul)."""

    GENDER = control("SelectGender")
    GRADE = control("SelectGrade")
    ADM_NO = control("txtAdmNo")
    BIRTH_CERTIFICATE = control("txtBCert")
    FIRST_NAME = control("txtFirstname")
    INDEX = control("txtIndex")
    OTHER_NAME = control("txtOthername")
    REMARK = control("txtRemark")
    SURNAME = control("txtSurname")
    YEAR = control("txtYear")

    ADD = "[ ADD NEW STUDENT ]"
    ADD_WITH_BC = "[ ADD NEW STUDENT (WITH BC)]"
    SAVE = "[  SAVE  ]"


# Defaults the learner listing's filter expects alongside a grade change.
CATEGORY_FILTER_DEFAULTS = {
    Controls.SELECT_BIRTH_CERTIFICATE: "1",
    Controls.SELECT_CATEGORY_2: "9 ",
}

# Row action arguments on the admitted joiners listing.
ROW_ACTION_CAPTURE = "ActionFOS"
ROW_ACTION_CAPTURE_WITHOUT_BC = "ActionFOSWBC"
ROW_ACTION_RESET = "ActionReset"
ROW_ACTION_UNDO = "ActionUNDO"
PENDING_ROW_CAPTURE = "BIO-BC"


class Markers:
    """Patterns and strings that classify portal responses."""

    LOGIN_SUCCESS = re.compile(r"pageRedirect.+Default\.aspx", re.IGNORECASE)
    INVALID_CREDENTIALS = re.compile(
        r"1\|#\|\|4\|17\|pageRedirect\|\|%2fErrorPage\.aspx\|", re.IGNORECASE
    )
    LOGIN_REDIRECT = re.compile(r"pageRedirect.+Login\.aspx", re.IGNORECASE)
    PAGER_LINK = re.compile(
        r"__doPostBack\('ctl00\$ContentPlaceHolder1\$grdLearners','Page\$\d+'\)"
    )
    REQUEST_REDIRECT = re.compile(r"pageRedirect.+Learner.+Studindexreq", re.IGNORECASE)
    BIODATA_REDIRECT = re.compile(r"pageRedirect.+Learner.+Alearner\.aspx", re.IGNORECASE)
    COUNTY_ACKNOWLEDGED = re.compile(r"updatePanel\|ctl00_ContentPlaceHolder1_UpdatePanel1")
    ROW_CONTROL_NUMBER = re.compile(r"_ctl(\d+)_")

    CAPACITY_EXHAUSTED = "School Vacacies are exhausted!!"
    ADMITTED = "THE STUDENT HAS BEEN ADMITTED TO THE SCHOOL"
    REQUEST_SAVED = "Request Successfully Saved!!"
    IGNORE_PROMPT = "do you want to ignore this error"
    BIODATA_SAVED = "The Learner Basic Details have been Saved successfully"
    NEW_UPI = "New UPI:"
    CAPTURED_TWICE = "You Can Not Capture Bio-Data Twice for this Student"
    NHIF_REMOTE_ERROR = "The remote server returned an error:"
    NHIF_NUMBER = re.compile(r"\d[\w/-]*")
    TRANSFER_SAVED = (
        "The Transfer Request Saved. Learner Awaits Being Released From Current School"
    )

    # Bodies shorter than this are never full pages and carry no state.
    MIN_STATEFUL_BODY = 100
    # Session-expired redirects are tiny delta bodies.
    MAX_EXPIRED_REDIRECT_BODY = 50


# Fields read off the institution detail page.
INSTITUTION_FIELDS = {
    "name": element("Institution_Name"),
    "code": element("Institution_Code"),
    "knec_code": element("Knec_Code"),
    "registration_number": element("Institution_Current_Code"),
    "type": element("Institution_Type"),
    "education_level": element("Institution_Level_Code"),
    "category": element("Institution_Category_Code"),
    "county": element("County_Code"),
    "sub_county": element("Sub_County_Code"),
    "postal_address": element("Postal_Address"),
    "mobile_number": element("Mobile_Number1"),
    "email": element("Email_Address"),
}

# Institution page selects whose option value is the code, not the label.
INSTITUTION_CODE_FIELDS = {
    "education_level_code": element("Institution_Level_Code"),
}
