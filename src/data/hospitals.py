"""Static hospital directory used for display enrichment"""

from typing import Optional

from src.data.schema import Hospital


HOSPITALS_DATA = [
    {"id": "apollo_bgl", "name": "Apollo Hospitals, Bannerghatta Road", "city": "Bangalore", "contact": "1860-500-1066"},
    {"id": "fortis_cunningham_bgl", "name": "Fortis Hospital, Cunningham Road", "city": "Bangalore", "contact": "080-4199-4444"},
    {"id": "manipal_bgl", "name": "Manipal Hospital, Old Airport Road", "city": "Bangalore", "contact": "1800-102-5555"},
    {"id": "narayana_health_bgl", "name": "Narayana Health City", "city": "Bangalore", "contact": "1860-208-0208"},
    {"id": "jss_msr", "name": "JSS Hospital, Mysuru", "city": "Mysore", "contact": "0821-233-5555"},
    {"id": "kmc_mgl", "name": "KMC Hospital, Mangaluru", "city": "Mangalore", "contact": "0824-244-5858"},
    {"id": "columbia_asia_bgl", "name": "Columbia Asia Hospital", "city": "Bangalore", "contact": "080-6660-0666"},
    {"id": "bgs_gleneagles_bgl", "name": "BGS Gleneagles Global Hospital", "city": "Bangalore", "contact": "080-2625-5555"},
    {"id": "kasturba_mnpl", "name": "Kasturba Hospital", "city": "Manipal", "contact": "0820-292-2345"},
    {"id": "sdm_dwd", "name": "SDM Medical College & Hospital", "city": "Dharwad", "contact": "0836-247-7507"},
    {"id": "father_muller_mgl", "name": "Father Muller Medical College Hospital", "city": "Mangalore", "contact": "0824-223-8000"},
    {"id": "st_johns_bgl", "name": "St. John's Medical College Hospital", "city": "Bangalore", "contact": "080-2206-5000"},
    {"id": "shridevi_med_tmk", "name": "Shridevi Institute of Medical Sciences & Research Hospital", "city": "Tumakuru", "contact": "0816-221-1555"},
    {"id": "adarsha_tmk", "name": "Adarsha Hospital", "city": "Tumakuru", "contact": "0816-225-5555"},
    {"id": "sree_siddaganga_med_tmk", "name": "Sree Siddaganga Medical College And Research Institute", "city": "Tumakuru", "contact": "0816-220-0222"},
    {"id": "seetharam_tmk", "name": "Seetharam Hospital", "city": "Tumakuru", "contact": "0816-224-4444"},
    {"id": "sri_manjunatha_tmk", "name": "Sri Manjunatha Hospital", "city": "Tumakuru", "contact": "0816-226-6666"},
    {"id": "vasavi_tmk", "name": "Vasavi Hospital", "city": "Tumakuru", "contact": "0816-223-3333"},
    {"id": "mamatha_tmk", "name": "Mamatha Hospital", "city": "Tumakuru", "contact": "0816-227-7777"},
    {"id": "aruna_tmk", "name": "Aruna Hospital", "city": "Tumakuru", "contact": "0816-228-8888"},
]

# Mock ids are 1-based positions: HSP-001, HSP-002, ...
HOSPITALS: list[Hospital] = [
    Hospital(mock_id=f"HSP-{index + 1:03d}", **hospital)
    for index, hospital in enumerate(HOSPITALS_DATA)
]

_BY_MOCK_ID = {h.mock_id: h for h in HOSPITALS}


def get_hospital(mock_id: Optional[str]) -> Optional[Hospital]:
    if not mock_id:
        return None
    return _BY_MOCK_ID.get(mock_id)
