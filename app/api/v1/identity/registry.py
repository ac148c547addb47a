"""Static national-ID lookup tables used by the student registration form."""

from typing import Dict


def _person(first, last, dob, gender, address, phone, email) -> Dict[str, str]:
    return {
        "firstName": first,
        "lastName": last,
        "dateOfBirth": dob,
        "gender": gender,
        "nationality": "Sierra Leonean",
        "address": address,
        "phoneNumber": phone,
        "emailaddress": email,
    }


CITIZENS: Dict[str, Dict[str, str]] = {
    "SL12345678": _person("Fatmata", "Kamara", "2008-05-12", "Female", "23 Main Street, Freetown", "+232-76-123456", "fatmata.kamara@gmail.com"),
    "SL87654321": _person("Mohamed", "Sesay", "2012-08-20", "Male", "15 Circular Road, Freetown", "+232-76-654321", "mohamed.sesay@gmail.com"),
    "SL11223344": _person("Aminata", "Bangura", "2006-11-03", "Female", "7 Lumley Road, Freetown", "+232-76-112233", "aminata.bangura@gmail.com"),
    "SL55667788": _person("Ibrahim", "Koroma", "2009-03-15", "Male", "45 Circular Road, Freetown", "+232-76-456789", "ibrahim.koroma@gmail.com"),
    "SL99887766": _person("Mariama", "Turay", "2007-07-22", "Female", "12 Aberdeen Road, Freetown", "+232-76-998877", "mariama.turay@gmail.com"),
    "SL33445566": _person("Alhaji", "Mansaray", "2005-12-08", "Male", "8 Regent Road, Freetown", "+232-76-334455", "alhaji.mansaray@gmail.com"),
    "SL77889900": _person("Hawa", "Conteh", "2010-04-18", "Female", "33 Pademba Road, Freetown", "+232-76-778899", "hawa.conteh@gmail.com"),
    "SL22334455": _person("Sorie", "Kargbo", "2004-09-25", "Male", "19 Kissy Road, Freetown", "+232-76-223344", "sorie.kargbo@gmail.com"),
    "SL66778899": _person("Fatou", "Sankoh", "2011-01-14", "Female", "27 Wellington Street, Freetown", "+232-76-667788", "fatou.sankoh@gmail.com"),
    "SL44556677": _person("Lamin", "Kamara", "2003-06-30", "Male", "14 Fourah Bay Road, Freetown", "+232-76-445566", "lamin.kamara@gmail.com"),
    "SL88990011": _person("Aissatou", "Bangura", "2008-11-05", "Female", "6 Gloucester Street, Freetown", "+232-76-889900", "aissatou.bangura@gmail.com"),
    "SL11112222": _person("Mohamed", "Turay", "2006-02-17", "Male", "31 Murray Town Road, Freetown", "+232-76-111122", "mohamed.turay@gmail.com"),
    "SL22223333": _person("Mariama", "Sesay", "2009-08-12", "Female", "22 Congo Cross, Freetown", "+232-76-222233", "mariama.sesay@gmail.com"),
    "SL33334444": _person("Ibrahim", "Conteh", "2005-03-28", "Male", "9 Charlotte Street, Freetown", "+232-76-333344", "ibrahim.conteh@gmail.com"),
    "SL44445555": _person("Hawa", "Koroma", "2007-10-15", "Female", "17 Siaka Stevens Street, Freetown", "+232-76-444455", "hawa.koroma@gmail.com"),
    "SL55556666": _person("Sorie", "Sankoh", "2010-12-03", "Male", "25 Campbell Street, Freetown", "+232-76-555566", "sorie.sankoh@gmail.com"),
}

# Small fixed subset for the test endpoint.
TEST_CITIZENS: Dict[str, Dict[str, str]] = {
    nin: CITIZENS[nin] for nin in ("SL12345678", "SL87654321", "SL11223344")
}
